"""Snapshot files for filters.

A snapshot file holds a single msgpack map::

    {"kind": "bloom" | "safe" | "scaling" | "attenuated", "data": <snapshot>}

``data`` is the filter's ``to_dict()`` output, or the hex array for an
attenuated filter. There is no format versioning beyond the ``kind`` tag.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Union

import msgpack

from .attenuated import AttenuatedBloomFilter
from .bloom import BloomFilter, SafeBloomFilter, ScalingBloomFilter

__all__ = ["Filter", "pack", "unpack", "save", "load", "save_async", "load_async"]

logger = logging.getLogger(__name__)

Filter = Union[BloomFilter, SafeBloomFilter, ScalingBloomFilter, AttenuatedBloomFilter]

_KINDS: dict[str, type] = {
    "bloom": BloomFilter,
    "safe": SafeBloomFilter,
    "scaling": ScalingBloomFilter,
    "attenuated": AttenuatedBloomFilter,
}


def _kind_of(flt: Filter) -> str:
    for kind, cls in _KINDS.items():
        if type(flt) is cls:
            return kind
    raise TypeError(f"cannot snapshot {type(flt).__name__}")


# ---------------------------------------------------------------
# In-memory codec
# ---------------------------------------------------------------
def pack(flt: Filter) -> bytes:
    kind = _kind_of(flt)
    data = flt.to_hex_array() if isinstance(flt, AttenuatedBloomFilter) else flt.to_dict()
    return msgpack.packb({"kind": kind, "data": data}, use_bin_type=True)


def unpack(blob: bytes) -> Filter:
    envelope = msgpack.unpackb(blob, raw=False)
    kind = envelope.get("kind") if isinstance(envelope, dict) else None
    if kind not in _KINDS:
        raise ValueError(f"unknown filter kind in snapshot: {kind!r}")
    if kind == "attenuated":
        return AttenuatedBloomFilter.from_hex_array(envelope["data"])
    return _KINDS[kind].from_dict(envelope["data"])


# ---------------------------------------------------------------
# Files 💾
# ---------------------------------------------------------------
def save(flt: Filter, path: str | Path) -> Path:
    path = Path(path)
    blob = pack(flt)
    path.write_bytes(blob)
    logger.debug("saved %s filter snapshot to %s (%d bytes)", _kind_of(flt), path, len(blob))
    return path


def load(path: str | Path) -> Filter:
    path = Path(path)
    flt = unpack(path.read_bytes())
    logger.debug("loaded %s filter snapshot from %s", _kind_of(flt), path)
    return flt


async def save_async(flt: Filter, path: str | Path) -> Path:
    """Async-friendly wrapper around :func:`save`."""
    return await asyncio.to_thread(save, flt, path)


async def load_async(path: str | Path) -> Filter:
    """Async-friendly wrapper around :func:`load`."""
    return await asyncio.to_thread(load, path)
