"""Blossom: Bloom filters for set membership and peer-to-peer routing hints.

This package exposes plain, scaling and attenuated Bloom filters built on a
small bit field and the 32-bit FNV-1a hash, plus msgpack snapshot helpers in
`blossom.store`.
"""

from __future__ import annotations

__all__ = [
    "AttenuatedBloomFilter",
    "Bitfield",
    "BloomFilter",
    "FNV",
    "SafeBloomFilter",
    "ScalingBloomFilter",
    "calculate_hashes",
    "calculate_size",
    "calculate_slices",
    "create_hash",
]

from .attenuated import AttenuatedBloomFilter
from .bitfield import Bitfield
from .bloom import (
    BloomFilter,
    SafeBloomFilter,
    ScalingBloomFilter,
    calculate_hashes,
    calculate_size,
    calculate_slices,
)
from .fnv import FNV, create_hash
