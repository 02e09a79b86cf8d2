"""Fixed-size bit array backed by a ``bytearray``.

Bit *i* lives in byte ``i >> 3`` under mask ``1 << (i % 8)``. That layout is
what ends up in hex dumps and snapshots, so it must not change.
"""
from __future__ import annotations

from typing import Optional

__all__ = ["Bitfield", "MAX_BITS"]

MAX_BITS = 1 << 35  # 4 GiB of storage


class Bitfield:
    """A bit field that owns its buffer and is never resized."""

    __slots__ = ("size", "buffer")

    def __init__(self, size: int, buffer: Optional[bytes] = None):
        if not 0 <= size <= MAX_BITS:
            raise ValueError(f"bitfield size must be in [0, {MAX_BITS}], got {size}")
        nbytes = (size + 7) // 8
        self.size = size
        if buffer is None:
            self.buffer = bytearray(nbytes)
        else:
            if len(buffer) != nbytes:
                raise ValueError(
                    f"buffer holds {len(buffer)} bytes, a {size} bit field needs {nbytes}"
                )
            self.buffer = bytearray(buffer)

    def _locate(self, index: int) -> tuple[int, int]:
        if not 0 <= index < self.size:
            raise IndexError(f"bit index {index} out of range for size {self.size}")
        return index >> 3, 1 << (index % 8)

    # ------------------------------------------------------------------
    # Bit access
    # ------------------------------------------------------------------
    def get(self, index: int) -> bool:
        pos, mask = self._locate(index)
        return self.buffer[pos] & mask != 0

    def set(self, index: int, value: bool = True) -> "Bitfield":
        pos, mask = self._locate(index)
        if value:
            self.buffer[pos] |= mask
        else:
            self.buffer[pos] &= ~mask & 0xFF
        return self

    def toggle(self, index: int) -> "Bitfield":
        pos, mask = self._locate(index)
        self.buffer[pos] ^= mask
        return self

    # ------------------------------------------------------------------
    # Whole-buffer helpers
    # ------------------------------------------------------------------
    def count(self) -> int:
        """Number of bits currently set."""
        return int.from_bytes(self.buffer, "big").bit_count()

    def merge(self, other: "Bitfield") -> "Bitfield":
        """OR *other* into this field byte by byte."""
        if len(other.buffer) != len(self.buffer):
            raise ValueError(
                f"cannot merge a {len(other.buffer)} byte field into a {len(self.buffer)} byte field"
            )
        for pos, byte in enumerate(other.buffer):
            self.buffer[pos] |= byte
        return self

    def to_bytes(self) -> bytes:
        return bytes(self.buffer)

    def __len__(self) -> int:
        return self.size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bitfield):
            return NotImplemented
        return self.size == other.size and self.buffer == other.buffer

    def __repr__(self) -> str:  # pragma: no cover
        return f"Bitfield<{self.size} bits, {self.count()} set>"
