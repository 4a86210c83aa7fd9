import random

import pytest

from tlogtiles.bundle import EntryBundle, HashTile


@pytest.mark.parametrize("size", [1, 255, 11, 42])
def test_hash_tile_roundtrip(size):
    rng = random.Random(size)
    tile = HashTile([rng.randbytes(32) for _ in range(size)])
    raw = tile.marshal()
    assert len(raw) == 32 * size
    assert HashTile.unmarshal(raw) == tile


def test_hash_tile_bad_length():
    with pytest.raises(ValueError):
        HashTile.unmarshal(b"\x00" * 33)


def test_hash_tile_empty():
    assert HashTile.unmarshal(b"").nodes == []


@pytest.mark.parametrize("size", [1, 255, 11, 42])
def test_entry_bundle_roundtrip(size):
    rng = random.Random(size)
    want = [rng.randbytes(i * 100) for i in range(size)]
    raw = EntryBundle(want).marshal()
    assert EntryBundle.unmarshal(raw).entries == want


@pytest.mark.parametrize(
    "data, want_err",
    [
        (b"", False),
        (bytes([0x0, 0x02]) + b"a", True),
        (bytes([0x0, 0x0, 0x0, 0x1]) + b"a" + bytes([0x0, 0x0]), False),
        (bytes([0x1]), True),
    ],
)
def test_entry_bundle_unmarshal(data, want_err):
    if want_err:
        with pytest.raises(ValueError):
            EntryBundle.unmarshal(data)
    else:
        bundle = EntryBundle.unmarshal(data)
        assert bundle.marshal() == data


def test_entry_bundle_empty_nodes():
    data = bytes([0x0, 0x0, 0x0, 0x1]) + b"a" + bytes([0x0, 0x0])
    assert EntryBundle.unmarshal(data).entries == [b"", b"a", b""]


def test_entry_bundle_marshal_format():
    assert EntryBundle([b"a", b"bc"]).marshal() == b"\x00\x01a\x00\x02bc"


def test_entry_bundle_entry_too_large():
    with pytest.raises(ValueError):
        EntryBundle([b"\x00" * 0x10000]).marshal()