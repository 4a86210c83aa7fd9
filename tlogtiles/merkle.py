"""RFC 6962 Merkle tree hashing and compact range helpers."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

_LEAF_PREFIX = b"\x00"
_NODE_PREFIX = b"\x01"


def hash_leaf(data: bytes) -> bytes:
    """Return the RFC 6962 hash of a leaf."""
    return hashlib.sha256(_LEAF_PREFIX + bytes(data)).digest()


def hash_children(left: bytes, right: bytes) -> bytes:
    """Return the RFC 6962 hash of an interior node."""
    return hashlib.sha256(_NODE_PREFIX + bytes(left) + bytes(right)).digest()


def empty_root() -> bytes:
    """Return the root hash of an empty tree."""
    return hashlib.sha256(b"").digest()


def _decompose(begin: int, end: int) -> tuple[int, int]:
    if begin == 0:
        return 0, end
    xbegin = begin - 1
    d = (xbegin ^ end).bit_length() - 1
    mask = (1 << d) - 1
    return ~xbegin & mask, end & mask


def range_nodes(begin: int, end: int) -> list[tuple[int, int]]:
    """Return the (level, index) of the perfect subtrees covering ``[begin, end)``, left to right."""
    if begin > end:
        raise ValueError(f"invalid range [{begin}, {end})")
    left, right = _decompose(begin, end)
    nodes = []
    pos = begin
    while left:
        level = (left & -left).bit_length() - 1
        bit = 1 << level
        nodes.append((level, pos >> level))
        pos += bit
        left ^= bit
    while right:
        level = right.bit_length() - 1
        bit = 1 << level
        nodes.append((level, pos >> level))
        pos += bit
        right ^= bit
    return nodes


def merkle_root(hashes: Sequence[bytes]) -> bytes:
    """Return the RFC 6962 root over a sequence of leaf hashes."""
    if not hashes:
        return empty_root()
    if len(hashes) == 1:
        return bytes(hashes[0])
    split = 1 << ((len(hashes) - 1).bit_length() - 1)
    return hash_children(merkle_root(hashes[:split]), merkle_root(hashes[split:]))