"""Client-side access to tlog-tiles logs: node lookup, leaf hashes and entry bundles."""

from __future__ import annotations

from collections.abc import Callable

from tlogtiles.bundle import EntryBundle, HashTile
from tlogtiles.layout import node_coords_to_tile_address, partial_tile_size
from tlogtiles.merkle import merkle_root, range_nodes

TileFetcher = Callable[[int, int, int], bytes]
"""Returns the raw tile at (tile level, tile index, partial width).

Raises FileNotFoundError if the tile does not exist.
"""

BundleFetcher = Callable[[int, int], bytes]
"""Returns the raw entry bundle at (bundle index, partial width).

Raises FileNotFoundError if the bundle does not exist.
"""


class NodeCache:
    """Looks up tree node hashes via tiles, caching every tile it fetches.

    Not thread-safe; intended for the course of a single request.
    """

    def __init__(self, fetch_tile: TileFetcher, log_size: int) -> None:
        self._fetch_tile = fetch_tile
        self.log_size = log_size
        self._ephemeral: dict[tuple[int, int], bytes] = {}
        self._tiles: dict[tuple[int, int], HashTile] = {}

    def set_ephemeral_node(self, level: int, index: int, node_hash: bytes) -> None:
        """Store a derived node hash that is not held in any tile."""
        self._ephemeral[(level, index)] = bytes(node_hash)

    def get_node(self, level: int, index: int) -> bytes:
        """Return the hash of the tree node at (level, index).

        An ephemeral node set earlier wins; otherwise the tile holding the node is
        fetched (once) and the node computed from the tile's bottom row.
        """
        ephemeral = self._ephemeral.get((level, index))
        if ephemeral:
            return ephemeral

        tile_level, tile_index, node_level, node_index = node_coords_to_tile_address(
            level, index
        )
        key = (tile_level, tile_index)
        tile = self._tiles.get(key)
        if tile is None:
            raw = self._fetch_tile(
                tile_level, tile_index, partial_tile_size(tile_level, tile_index, self.log_size)
            )
            try:
                tile = HashTile.unmarshal(raw)
            except ValueError as exc:
                raise ValueError(f"failed to parse tile: {exc}") from exc
            self._tiles[key] = tile

        num_leaves = 1 << node_level
        first_leaf = node_index * num_leaves
        last_leaf = first_leaf + num_leaves
        if last_leaf > len(tile.nodes):
            raise ValueError(
                f"require leaf nodes [{first_leaf}, {last_leaf}) "
                f"but only got {len(tile.nodes)} leaves"
            )
        return merkle_root(tile.nodes[first_leaf:last_leaf])


def fetch_range_nodes(size: int, fetch_tile: TileFetcher) -> list[bytes]:
    """Return the hashes of the compact range covering a log of ``size`` entries."""
    cache = NodeCache(fetch_tile, size)
    return [cache.get_node(level, index) for level, index in range_nodes(0, size)]


def fetch_leaf_hashes(
    fetch_tile: TileFetcher, first: int, n: int, log_size: int
) -> list[bytes]:
    """Return ``n`` consecutive leaf hashes starting at index ``first``."""
    cache = NodeCache(fetch_tile, log_size)
    return [cache.get_node(0, index) for index in range(first, first + n)]


def get_entry_bundle(fetch_bundle: BundleFetcher, index: int, log_size: int) -> EntryBundle:
    """Fetch and parse the entry bundle at bundle index ``index``."""
    try:
        raw = fetch_bundle(index, partial_tile_size(0, index, log_size))
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"leaf bundle at index {index} not found: {exc}") from exc
    try:
        return EntryBundle.unmarshal(raw)
    except ValueError as exc:
        raise ValueError(f"failed to parse EntryBundle at index {index}: {exc}") from exc