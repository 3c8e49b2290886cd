"""Deterministic node key generation.

Keys are a monotonically increasing sequence number rendered in base 36
(digits and uppercase letters), zero-padded to the fixed key width. A
store resumes the sequence from its entry count when reopened.
"""

import string

from candlestore.store.codec import KEY_SIZE

_ALPHABET = string.digits + string.ascii_uppercase
_BASE = len(_ALPHABET)


def encode_sequence(sequence: int, width: int = KEY_SIZE) -> str:
    """Render a non-negative sequence number as a fixed-width base-36 key."""
    if sequence < 0:
        raise ValueError("Sequence must be non-negative")
    digits = []
    while sequence:
        sequence, remainder = divmod(sequence, _BASE)
        digits.append(_ALPHABET[remainder])
    key = "".join(reversed(digits)).rjust(width, "0")
    if len(key) > width:
        raise ValueError(f"Sequence does not fit in {width} characters")
    return key


class KeyGenerator:
    """Hands out sequential fixed-width keys starting at ``start``."""

    def __init__(self, start: int = 0) -> None:
        self._next = start

    @property
    def next_sequence(self) -> int:
        return self._next

    def next_key(self) -> str:
        key = encode_sequence(self._next)
        self._next += 1
        return key
