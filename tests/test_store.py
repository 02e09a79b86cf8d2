"""Tests for snapshot packing and snapshot files."""
import msgpack
import pytest

from blossom import store
from blossom.attenuated import AttenuatedBloomFilter
from blossom.bloom import BloomFilter, SafeBloomFilter, ScalingBloomFilter

KEYS = [f"key{i}".encode() for i in range(30)]
MISSING = [f"missing{i}".encode() for i in range(30)]


@pytest.fixture
def scaling():
    flt = ScalingBloomFilter(0.01, initial_capacity=8)
    for k in KEYS:
        flt.add(k)
    return flt


def test_pack_unpack_bloom():
    flt = BloomFilter(512, 4)
    for k in KEYS:
        flt.add(k)
    clone = store.unpack(store.pack(flt))
    assert isinstance(clone, BloomFilter)
    for k in KEYS + MISSING:
        assert clone.has(k) == flt.has(k)


def test_pack_unpack_safe():
    flt = SafeBloomFilter(10, 0.05)
    for k in KEYS[:7]:
        flt.add(k)
    clone = store.unpack(store.pack(flt))
    assert isinstance(clone, SafeBloomFilter)
    assert clone.count == 7
    assert clone.filter.bitfield == flt.filter.bitfield


def test_pack_unpack_scaling(scaling):
    clone = store.unpack(store.pack(scaling))
    assert isinstance(clone, ScalingBloomFilter)
    assert len(clone.filters) == len(scaling.filters)
    for k in KEYS + MISSING:
        assert clone.has(k) == scaling.has(k)


def test_pack_unpack_attenuated():
    flt = AttenuatedBloomFilter()
    flt[0].add("a")
    flt[2].add("c")
    clone = store.unpack(store.pack(flt))
    assert isinstance(clone, AttenuatedBloomFilter)
    assert clone.to_hex_array() == flt.to_hex_array()


def test_unpack_unknown_kind():
    blob = msgpack.packb({"kind": "cuckoo", "data": {}}, use_bin_type=True)
    with pytest.raises(ValueError):
        store.unpack(blob)
    with pytest.raises(ValueError):
        store.unpack(msgpack.packb([1, 2, 3]))


def test_pack_rejects_unknown_objects():
    with pytest.raises(TypeError):
        store.pack(object())  # type: ignore[arg-type]


def test_save_load(tmp_path, scaling):
    path = store.save(scaling, tmp_path / "filter.bloom")
    assert path.exists()
    clone = store.load(path)
    assert clone.to_dict() == scaling.to_dict()


@pytest.mark.asyncio
async def test_save_load_async(tmp_path, scaling):
    path = tmp_path / "filter.bloom"
    await store.save_async(scaling, path)
    clone = await store.load_async(path)
    for k in KEYS:
        assert clone.has(k)
