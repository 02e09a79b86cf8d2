"""Attenuated Bloom filter: one :class:`BloomFilter` per hop distance.

Level 0 describes what a node holds itself, level *d* what it can reach in
*d* hops. Peers advertise their filters as a list of hex strings; a node
folds a neighbour's advertisement into its own with :meth:`merge`, which
shifts every level one hop further away::

    local[1] |= peer[0]
    local[2] |= peer[1]
    ...

Level 0 is never touched by a merge.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from .bloom import BloomFilter

__all__ = ["AttenuatedBloomFilter", "DEFAULT_BITFIELD_SIZE", "DEFAULT_FILTER_DEPTH"]

logger = logging.getLogger(__name__)

DEFAULT_BITFIELD_SIZE = 160
DEFAULT_FILTER_DEPTH = 3
_SLICES = 2


class AttenuatedBloomFilter:
    """Fixed-depth stack of equally sized Bloom filters."""

    def __init__(self, bitfield_size: int = DEFAULT_BITFIELD_SIZE, filter_depth: int = DEFAULT_FILTER_DEPTH):
        if filter_depth < 1:
            raise ValueError(f"filter depth must be >= 1, got {filter_depth}")
        self.bitfield_size = bitfield_size
        self.filter_depth = filter_depth
        self._filters = [BloomFilter(bitfield_size, _SLICES) for _ in range(filter_depth)]

    # ------------------------------------------------------------------
    # Level access
    # ------------------------------------------------------------------
    def __getitem__(self, depth: int) -> BloomFilter:
        return self._filters[depth]

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[BloomFilter]:
        return iter(self._filters)

    # ------------------------------------------------------------------
    # Exchange format
    # ------------------------------------------------------------------
    def to_hex_array(self) -> list[str]:
        return [f.bitfield.to_bytes().hex() for f in self._filters]

    def __str__(self) -> str:
        return ",".join(self.to_hex_array())

    @classmethod
    def from_hex_array(cls, hex_filters: Sequence[str]) -> "AttenuatedBloomFilter":
        """Rebuild a filter from the output of :meth:`to_hex_array`."""
        if not hex_filters:
            raise ValueError("need at least one hex encoded level")
        buffers = [bytes.fromhex(h) for h in hex_filters]
        nbytes = len(buffers[0])
        if nbytes == 0:
            raise ValueError("hex encoded levels must not be empty")
        for depth, buf in enumerate(buffers):
            if len(buf) != nbytes:
                raise ValueError(f"level {depth} holds {len(buf)} bytes, level 0 holds {nbytes}")
        obj = cls(nbytes * 8, len(buffers))
        obj._filters = [BloomFilter(nbytes * 8, _SLICES, buf) for buf in buffers]
        logger.debug("rebuilt attenuated filter: depth=%d, bitfield_size=%d", obj.filter_depth, obj.bitfield_size)
        return obj

    @classmethod
    def from_string(cls, text: str) -> "AttenuatedBloomFilter":
        return cls.from_hex_array(text.split(","))

    # ------------------------------------------------------------------
    # Merge 🔀
    # ------------------------------------------------------------------
    def merge(self, peer: Sequence[BloomFilter]) -> "AttenuatedBloomFilter":
        """OR *peer*'s level ``d - 1`` into our level ``d`` for every ``d >= 1``.

        Stops at the first level the peer does not have. All touched levels
        are checked for matching sizes before any bit changes.
        """
        pairs = [(self._filters[d], peer[d - 1]) for d in range(1, min(len(self), len(peer) + 1))]
        for depth, (local, remote) in enumerate(pairs, start=1):
            if len(local.bitfield.buffer) != len(remote.bitfield.buffer):
                raise ValueError(
                    f"level {depth}: peer level {depth - 1} has "
                    f"{len(remote.bitfield.buffer)} bytes, expected {len(local.bitfield.buffer)}"
                )
        for local, remote in pairs:
            local.bitfield.merge(remote.bitfield)
        logger.debug("merged %d peer levels into attenuated filter", len(pairs))
        return self

    def __repr__(self) -> str:  # pragma: no cover
        return f"AttenuatedBloomFilter<depth={self.filter_depth}, bitfield_size={self.bitfield_size}>"
