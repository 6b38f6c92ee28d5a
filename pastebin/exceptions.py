"""
Exceptions raised by the paste store and service.

Absence of a paste (not found, expired, already burned) is never an exception;
lookups return None and the service reports a DenialReason instead.
"""


class PasteError(Exception):
    """Base class for paste service errors."""


class KeyCollision(PasteError):
    """A live paste already holds the key. Callers regenerate and retry."""

    def __init__(self, key: str):
        super().__init__(f"Key {key} is already assigned to a live paste")
        self.key = key


class KeyGenerationExhausted(PasteError):
    """Every generated key collided; key length or alphabet is misconfigured."""

    def __init__(self, attempts: int):
        super().__init__(f"No free key found after {attempts} attempts")
        self.attempts = attempts


class StorageError(PasteError):
    """The storage backend failed to complete an operation."""
