"""Short transfer key generation and validation."""

from __future__ import annotations

import secrets
import string

KEY_ALPHABET = string.ascii_lowercase + string.digits
DEFAULT_KEY_LENGTH = 4


class KeyGenerator:
    """Mints short keys a person can read off one screen and type on another.

    Keys are not globally unique: once an entry is evicted, a later key may
    reuse the same characters.
    """

    def __init__(self, length: int = DEFAULT_KEY_LENGTH, alphabet: str = KEY_ALPHABET) -> None:
        if length < 1:
            raise ValueError("key length must be positive")
        self.length = length
        self.alphabet = alphabet
        self._allowed = frozenset(alphabet)

    def generate(self) -> str:
        return "".join(secrets.choice(self.alphabet) for _ in range(self.length))

    def is_well_formed(self, value: object) -> bool:
        if not isinstance(value, str) or len(value) != self.length:
            return False
        return all(ch in self._allowed for ch in value)
