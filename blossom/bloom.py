"""Bloom filters hashed with FNV-1a and the Kirsch–Mitzenmacher trick.

Three flavours live here:

    • :class:`BloomFilter`         – fixed size & slice count
    • :class:`SafeBloomFilter`     – dimensioned from capacity/error rate,
                                     refuses inserts once full
    • :class:`ScalingBloomFilter`  – grows a series of safe filters
                                     (Almeida et al., "Scalable Bloom Filters")

Every filter can be turned into a plain ``dict`` snapshot (``to_dict``) and
back (``from_dict``), or into msgpack bytes (``to_bytes``/``from_bytes``).
Reconstruction copies bits verbatim, it never re-derives them.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Mapping

import msgpack

from .bitfield import Bitfield
from .fnv import FNV, Key, as_bytes

__all__ = [
    "BloomFilter",
    "SafeBloomFilter",
    "ScalingBloomFilter",
    "calculate_hashes",
    "calculate_size",
    "calculate_slices",
]

logger = logging.getLogger(__name__)

# (ln 2) ** 2 truncated to six places; existing filters were sized with it.
_LOG2_SQUARED = 0.480453

DEFAULT_RATIO = 0.9
DEFAULT_SCALING = 2
DEFAULT_INITIAL_CAPACITY = 1000


# -------------------------------------------------------
# Sizing math 📐
# -------------------------------------------------------
def calculate_size(capacity: int, error_rate: float) -> int:
    """Bits needed to hold *capacity* keys at *error_rate* false positives."""
    if capacity < 1:
        raise ValueError(f"capacity must be >= 1, got {capacity}")
    if not 0 < error_rate < 1:
        raise ValueError(f"error rate must be in (0, 1), got {error_rate}")
    return math.ceil(capacity * math.log(error_rate) / -_LOG2_SQUARED)


def calculate_slices(size: int, capacity: int) -> int:
    """Optimal hash count for *size* bits and *capacity* keys.

    The textbook value ``size / capacity * ln 2`` is real; it is rounded *up*
    so that the result equals the number of iterations of ``i < slices``.
    """
    if capacity < 1:
        raise ValueError(f"capacity must be >= 1, got {capacity}")
    return max(1, math.ceil(size / capacity * math.log(2)))


def calculate_hashes(key: Key, size: int, slices: int, encoding: str = "utf-8") -> list[int]:
    """Bit positions for *key*: ``(h1 + i * h2) % size`` for ``i < slices``.

    ``h1``/``h2`` are FNV-1a digests of the key salted with ``S`` and ``W``.
    The sum is not wrapped to 32 bits.
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    if slices < 1:
        raise ValueError(f"slices must be >= 1, got {slices}")
    data = as_bytes(key, encoding)
    h1 = FNV(b"S").update(data).value()
    h2 = FNV(b"W").update(data).value()
    return [(h1 + i * h2) % size for i in range(slices)]


def _buffer_from(value: Any) -> bytes:
    """Accept the buffer shapes found in snapshots.

    bytes, a list of ints, a hex string, or the ``{"type": "Buffer",
    "data": [...]}`` JSON form.
    """
    if isinstance(value, Mapping):
        value = value.get("data")
    if isinstance(value, str):
        return bytes.fromhex(value)
    if isinstance(value, (bytes, bytearray, memoryview, list, tuple)):
        return bytes(value)
    raise ValueError(f"unsupported buffer encoding in snapshot: {type(value).__name__}")


class BloomFilter:
    """Classic Bloom filter: *size* bits, *slices* positions per key."""

    def __init__(self, size: int = 16, slices: int = 2, buffer: bytes | None = None):
        if not isinstance(slices, int):
            raise TypeError(f"slices must be an int, got {type(slices).__name__}; round with calculate_slices()")
        if size < 1:
            raise ValueError(f"size must be >= 1, got {size}")
        if slices < 1:
            raise ValueError(f"slices must be >= 1, got {slices}")
        self.size = size
        self.slices = slices
        self.bitfield = Bitfield(size, buffer)

    # -------------------------------------------------------
    # Construction helpers 🏗️
    # -------------------------------------------------------
    @classmethod
    def from_capacity(cls, capacity: int, error_rate: float = 0.01) -> "BloomFilter":
        """Create a filter that can store *capacity* keys with ≤ *error_rate* false positives."""
        size = calculate_size(capacity, error_rate)
        return cls(size, calculate_slices(size, capacity))

    # -------------------------------------------------------
    # API
    # -------------------------------------------------------
    def add(self, key: Key, encoding: str = "utf-8") -> "BloomFilter":
        for pos in calculate_hashes(key, self.size, self.slices, encoding):
            self.bitfield.set(pos)
        return self

    def has(self, key: Key, encoding: str = "utf-8") -> bool:
        return all(self.bitfield.get(pos) for pos in calculate_hashes(key, self.size, self.slices, encoding))

    def __contains__(self, key: Key) -> bool:
        return self.has(key)

    # -------------------------------------------------------
    # Serialisation 📦
    # -------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "slices": self.slices,
            "bitfield": {"buffer": self.bitfield.to_bytes()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BloomFilter":
        # Older snapshots store the unrounded slice count; a loop bound of
        # `i < slices` runs ceil(slices) times.
        slices = data["slices"]
        if isinstance(slices, float):
            slices = math.ceil(slices)
        return cls(data["size"], slices, _buffer_from(data["bitfield"]["buffer"]))

    def to_bytes(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def from_bytes(cls, blob: bytes) -> "BloomFilter":
        return cls.from_dict(msgpack.unpackb(blob, raw=False))

    def __repr__(self) -> str:  # pragma: no cover
        return f"BloomFilter<size={self.size}, slices={self.slices}>"


class SafeBloomFilter:
    """Bloom filter that holds at most *capacity* keys at *error_rate*.

    Once ``count`` reaches ``capacity`` every further :meth:`add` returns
    ``False`` and leaves the filter untouched.
    """

    def __init__(self, capacity: int = 20, error_rate: float = 0.1, buffer: bytes | None = None):
        size = calculate_size(capacity, error_rate)
        self.capacity = capacity
        self.error_rate = error_rate
        self.count = 0
        self.filter = BloomFilter(size, calculate_slices(size, capacity), buffer)

    @property
    def is_full(self) -> bool:
        return self.count >= self.capacity

    def add(self, key: Key, encoding: str = "utf-8") -> bool:
        """Add *key* if there is room; return whether it was added."""
        if self.is_full:
            return False
        self.filter.add(key, encoding)
        self.count += 1
        return True

    def has(self, key: Key, encoding: str = "utf-8") -> bool:
        return self.filter.has(key, encoding)

    def __contains__(self, key: Key) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return self.count

    def to_dict(self) -> dict[str, Any]:
        return {
            "capacity": self.capacity,
            "errorRate": self.error_rate,
            "count": self.count,
            "filter": self.filter.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SafeBloomFilter":
        count = data["count"]
        if not 0 <= count <= data["capacity"]:
            raise ValueError(f"count {count} outside [0, {data['capacity']}]")
        obj = cls.__new__(cls)
        obj.capacity = data["capacity"]
        obj.error_rate = data["errorRate"]
        obj.count = count
        obj.filter = BloomFilter.from_dict(data["filter"])
        return obj

    def to_bytes(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def from_bytes(cls, blob: bytes) -> "SafeBloomFilter":
        return cls.from_dict(msgpack.unpackb(blob, raw=False))

    def __repr__(self) -> str:  # pragma: no cover
        return f"SafeBloomFilter<{self.count}/{self.capacity} @ {self.error_rate:g}>"


def _check_options(error_rate: float, ratio: float, scaling: float) -> None:
    if not 0 < error_rate < 1:
        raise ValueError(f"error rate must be in (0, 1), got {error_rate}")
    if not 0 < ratio < 1:
        raise ValueError(f"ratio must be in (0, 1), got {ratio}")
    if scaling < 1:
        raise ValueError(f"scaling must be >= 1, got {scaling}")


class ScalingBloomFilter:
    """Series of :class:`SafeBloomFilter` generations.

    Parameters
    ----------
    error_rate: float
        Upper bound the compounded false-positive rate converges to.
    ratio: float
        Each new generation's error rate is the previous one's times *ratio*.
    scaling: float
        Each new generation's capacity is the previous one's times *scaling*.
    initial_capacity: int
        Capacity of the first generation.
    """

    def __init__(
        self,
        error_rate: float = 0.1,
        *,
        ratio: float = DEFAULT_RATIO,
        scaling: float = DEFAULT_SCALING,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
    ):
        _check_options(error_rate, ratio, scaling)
        self.error_rate = error_rate
        self.ratio = ratio
        self.scaling = scaling
        self.initial_capacity = initial_capacity
        # Geometric series: sum of e * (1 - r) * r**i stays below e.
        self.filters: list[SafeBloomFilter] = [
            SafeBloomFilter(initial_capacity, error_rate * (1 - ratio))
        ]

    def add(self, key: Key, encoding: str = "utf-8") -> "ScalingBloomFilter":
        tail = self.filters[-1]
        if tail.add(key, encoding):
            return self
        tail = SafeBloomFilter(math.ceil(tail.capacity * self.scaling), tail.error_rate * self.ratio)
        tail.add(key, encoding)
        self.filters.append(tail)
        logger.debug(
            "scaling filter grew to %d generations (capacity=%d, error_rate=%g)",
            len(self.filters), tail.capacity, tail.error_rate,
        )
        return self

    def has(self, key: Key, encoding: str = "utf-8") -> bool:
        # Newest first: recent keys most likely live in the tail.
        return any(f.has(key, encoding) for f in reversed(self.filters))

    def __contains__(self, key: Key) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return sum(f.count for f in self.filters)

    @property
    def capacity(self) -> int:
        """Total capacity across all generations created so far."""
        return sum(f.capacity for f in self.filters)

    def compounded_error(self) -> float:
        """False-positive probability of a lookup across every generation."""
        return 1 - math.prod(1 - f.error_rate for f in self.filters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "errorRate": self.error_rate,
            "ratio": self.ratio,
            "scaling": self.scaling,
            "initialCapacity": self.initial_capacity,
            "filters": [f.to_dict() for f in self.filters],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScalingBloomFilter":
        if not data["filters"]:
            raise ValueError("scaling filter snapshot has no generations")
        _check_options(data["errorRate"], data["ratio"], data["scaling"])
        obj = cls.__new__(cls)
        obj.error_rate = data["errorRate"]
        obj.ratio = data["ratio"]
        obj.scaling = data["scaling"]
        obj.initial_capacity = data["initialCapacity"]
        obj.filters = [SafeBloomFilter.from_dict(f) for f in data["filters"]]
        return obj

    def to_bytes(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @classmethod
    def from_bytes(cls, blob: bytes) -> "ScalingBloomFilter":
        return cls.from_dict(msgpack.unpackb(blob, raw=False))

    def __repr__(self) -> str:  # pragma: no cover
        return f"ScalingBloomFilter<{len(self.filters)} generations, {len(self)} keys>"
