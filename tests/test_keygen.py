"""Tests for pastebin.keygen.KeyGenerator."""

import pytest

from pastebin.keygen import ALPHABET, KeyGenerator


class TestKeyGenerator:
    def test_default_length(self):
        key = KeyGenerator().generate()
        assert len(key) == 8

    def test_uses_alphabet(self):
        key = KeyGenerator(length=64).generate()
        assert set(key) <= set(ALPHABET)

    def test_custom_alphabet(self):
        key = KeyGenerator(length=32, alphabet="ab").generate()
        assert set(key) <= {"a", "b"}

    def test_keys_are_distinct(self):
        gen = KeyGenerator()
        keys = {gen.generate() for _ in range(1000)}
        assert len(keys) == 1000

    def test_rejects_zero_length(self):
        with pytest.raises(ValueError):
            KeyGenerator(length=0)

    def test_rejects_single_character_alphabet(self):
        with pytest.raises(ValueError, match="alphabet"):
            KeyGenerator(alphabet="aaaa")
