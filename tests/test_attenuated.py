"""Unit tests for the attenuated Bloom filter."""
import pytest

from blossom.attenuated import AttenuatedBloomFilter
from blossom.bloom import BloomFilter

HEX_FILTERS = [
    "0000000000000100000000000040000000000000",
    "0010000000001000000000000000000000000000",
    "0000000040000000000000000100000000000000",
]


@pytest.fixture
def seeded():
    """An attenuated filter holding one key per level."""
    atbf = AttenuatedBloomFilter()
    atbf[0].add("test one")
    atbf[1].add("test two")
    atbf[2].add("test three")
    return atbf


def _foo_bar_baz() -> AttenuatedBloomFilter:
    atbf = AttenuatedBloomFilter()
    atbf[0].add("foo")
    atbf[1].add("bar")
    atbf[2].add("baz")
    return atbf


def test_default_depth_and_size():
    atbf = AttenuatedBloomFilter()
    assert atbf.filter_depth == 3
    assert atbf.bitfield_size == 160
    assert len(atbf) == 3
    assert len(atbf[0].bitfield.buffer) == 160 // 8
    assert all(f.slices == 2 for f in atbf)


def test_given_depth_and_size():
    atbf = AttenuatedBloomFilter(bitfield_size=256, filter_depth=6)
    assert atbf.filter_depth == 6
    assert atbf.bitfield_size == 256
    assert len(atbf) == 6
    assert len(atbf[0].bitfield.buffer) == 256 // 8


def test_levels_are_independent():
    atbf = AttenuatedBloomFilter()
    atbf[1].add("foo")
    assert not atbf[0].has("foo")
    assert atbf[1].has("foo")
    assert not atbf[2].has("foo")


def test_to_hex_array(seeded):
    assert seeded.to_hex_array() == HEX_FILTERS


def test_to_string(seeded):
    assert str(seeded) == ",".join(HEX_FILTERS)


def test_from_hex_array():
    atbf = AttenuatedBloomFilter.from_hex_array(HEX_FILTERS)
    assert atbf.filter_depth == 3
    assert atbf.bitfield_size == 160
    assert len(atbf) == 3
    assert len(atbf[0].bitfield.buffer) == 160 // 8
    assert atbf[0].has("test one")
    assert atbf[1].has("test two")
    assert atbf[2].has("test three")
    assert atbf.to_hex_array() == HEX_FILTERS


def test_from_string_round_trip(seeded):
    atbf = AttenuatedBloomFilter.from_string(str(seeded))
    assert atbf.to_hex_array() == seeded.to_hex_array()
    # no aliasing with the source
    atbf[0].add("another")
    assert seeded.to_hex_array() == HEX_FILTERS


def test_from_hex_array_rejects_bad_input():
    with pytest.raises(ValueError):
        AttenuatedBloomFilter.from_hex_array([])
    with pytest.raises(ValueError):
        AttenuatedBloomFilter.from_hex_array([HEX_FILTERS[0], "00ff"])
    with pytest.raises(ValueError):
        AttenuatedBloomFilter.from_hex_array(["zz"])


def test_merge():
    a, b = _foo_bar_baz(), _foo_bar_baz()
    assert a.merge(b) is a
    assert a[0].has("foo")
    assert not a[0].has("bar")
    assert not a[0].has("baz")
    assert a[1].has("foo")
    assert a[1].has("bar")
    assert not a[1].has("baz")
    assert a[2].has("bar")
    assert a[2].has("baz")
    assert not a[2].has("foo")


def test_merge_is_idempotent():
    a, b = _foo_bar_baz(), _foo_bar_baz()
    once = a.merge(b).to_hex_array()
    assert a.merge(b).to_hex_array() == once


def test_merge_leaves_peer_untouched():
    a, b = _foo_bar_baz(), _foo_bar_baz()
    before = b.to_hex_array()
    a.merge(b)
    assert b.to_hex_array() == before


def test_merge_with_shorter_peer_stops():
    local = AttenuatedBloomFilter(filter_depth=4)
    peer = AttenuatedBloomFilter(filter_depth=2)
    peer[0].add("near")
    peer[1].add("far")
    local.merge(peer)
    assert local[1].has("near")
    assert local[2].has("far")
    assert local[3].bitfield.count() == 0
    assert local[0].bitfield.count() == 0


def test_merge_accepts_plain_sequence():
    local = AttenuatedBloomFilter()
    level = BloomFilter(160, 2).add("foo")
    local.merge([level])
    assert local[1].has("foo")
    assert local[2].bitfield.count() == 0


def test_merge_size_mismatch_is_atomic():
    local = AttenuatedBloomFilter()
    peer = [BloomFilter(160, 2).add("foo"), BloomFilter(80, 2)]
    with pytest.raises(ValueError):
        local.merge(peer)
    assert all(f.bitfield.count() == 0 for f in local)
