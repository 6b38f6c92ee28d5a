"""
Short key generation for pastes.
"""
import secrets
import string

ALPHABET = string.ascii_letters + string.digits


class KeyGenerator:
    """Produces fixed-length random keys from a CSPRNG."""

    def __init__(self, length: int = 8, alphabet: str = ALPHABET):
        if length < 1:
            raise ValueError("length must be >= 1")
        if len(set(alphabet)) < 2:
            raise ValueError("alphabet needs at least two distinct characters")
        self.length = length
        self.alphabet = alphabet

    def generate(self) -> str:
        """Return a fresh key. Uniqueness is enforced by the store on insert."""
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))
