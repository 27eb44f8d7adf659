from __future__ import annotations

import hashlib
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

SELECTOR_LEN = 4


def blake2_256(data: BytesLike) -> bytes:
    """Return the 32-byte BLAKE2b digest of *data* (the code-hash function)."""
    return hashlib.blake2b(bytes(data), digest_size=32).digest()


def selector_for(name: str) -> bytes:
    """
    Selector of a constructor or message: the first four bytes of
    BLAKE2b-256 over the UTF-8 selector name (e.g. ``"PSP22::transfer"``).
    """
    return blake2_256(name.encode("utf-8"))[:SELECTOR_LEN]


__all__ = ["BytesLike", "SELECTOR_LEN", "blake2_256", "selector_for"]
