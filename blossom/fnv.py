"""32-bit FNV-1a hash.

FNV (Fowler/Noll/Vo) is fast, has good dispersion on nearly identical
inputs (URLs, hostnames, short keys) and is *not* suitable for
cryptographic use. The object mimics the :mod:`hashlib` interface:

    >>> create_hash(b"foo").update(b"bar").hexdigest()
    'bf9cf968'

The digest is always big-endian so that filters built on one machine can be
merged on another.
"""
from __future__ import annotations

import struct
from typing import BinaryIO, Union

__all__ = ["FNV", "Key", "as_bytes", "create_hash", "hash_file"]

_OFFSET_BASIS = 0x811C9DC5
_PRIME = 0x01000193  # 2**24 + 2**8 + 0x93
_MASK = 0xFFFFFFFF
_DIGEST = struct.Struct("!I")

Key = Union[str, bytes, bytearray, memoryview]


def as_bytes(data: Key, encoding: str = "utf-8") -> bytes:
    """Coerce *data* to ``bytes``, encoding text with *encoding*."""
    if isinstance(data, str):
        return data.encode(encoding)
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"expected str or bytes-like object, got {type(data).__name__}")


class FNV:
    """Streaming FNV-1a hash with a 4 byte digest."""

    name = "fnv1a_32"
    digest_size = 4

    def __init__(self, data: Key | None = None):
        self._hash = _OFFSET_BASIS
        if data is not None:
            self.update(data)

    def update(self, data: Key, encoding: str = "utf-8") -> "FNV":
        h = self._hash
        for byte in as_bytes(data, encoding):
            h = ((h ^ byte) * _PRIME) & _MASK
        self._hash = h
        return self

    def digest(self) -> bytes:
        return _DIGEST.pack(self._hash)

    def hexdigest(self) -> str:
        return self.digest().hex()

    def value(self) -> int:
        """Current hash as an unsigned 32-bit integer."""
        return self._hash

    def copy(self) -> "FNV":
        clone = FNV()
        clone._hash = self._hash
        return clone

    def __repr__(self) -> str:  # pragma: no cover
        return f"FNV<{self.hexdigest()}>"


def create_hash(data: Key | None = None) -> FNV:
    return FNV(data)


def hash_file(fp: BinaryIO, chunk_size: int = 64 * 1024) -> FNV:
    """Feed a binary file object through one hash, *chunk_size* bytes at a time."""
    h = FNV()
    while chunk := fp.read(chunk_size):
        h.update(chunk)
    return h
