"""Path layout and tile addressing for tlog-tiles logs."""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

CHECKPOINT_PATH = "checkpoint"

TILE_HEIGHT = 8
TILE_WIDTH = 1 << TILE_HEIGHT
ENTRY_BUNDLE_WIDTH = TILE_WIDTH

_MAX_UINT64 = (1 << 64) - 1
_DIGITS = re.compile(r"[0-9]+")


def partial_tile_size(level: int, index: int, log_size: int) -> int:
    """Return the number of leaves in a partial tile, or 0 if the tile is full."""
    size_at_level = log_size >> (level * TILE_HEIGHT)
    full_tiles = size_at_level // TILE_WIDTH
    if index < full_tiles:
        return 0
    return size_at_level % TILE_WIDTH


def node_coords_to_tile_address(tree_level: int, tree_index: int) -> tuple[int, int, int, int]:
    """Map tree node coordinates to (tile_level, tile_index, node_level, node_index)."""
    tile_row_width = 1 << (TILE_HEIGHT - tree_level % TILE_HEIGHT)
    tile_level = tree_level // TILE_HEIGHT
    tile_index = tree_index // tile_row_width
    node_level = tree_level % TILE_HEIGHT
    node_index = tree_index % tile_row_width
    return tile_level, tile_index, node_level, node_index


def entries_path_for_log_index(seq: int, log_size: int) -> str:
    """Return the path of the entry bundle holding the entry at index ``seq``."""
    tile_index = seq // ENTRY_BUNDLE_WIDTH
    return entries_path(tile_index, partial_tile_size(0, tile_index, log_size))


@dataclass(frozen=True)
class RangeInfo:
    """A run of elements within one bundle or tile."""

    index: int = 0
    partial: int = 0
    first: int = 0
    n: int = 0


def bundle_range(start: int, n: int, tree_size: int) -> Iterator[RangeInfo]:
    """Yield the bundles covering entries ``[start, min(start + n, tree_size))``."""
    if start >= tree_size or n == 0:
        return
    if start + n > tree_size:
        n = tree_size - start

    end_inc = start + n - 1
    s_index = start // ENTRY_BUNDLE_WIDTH
    e_index = end_inc // ENTRY_BUNDLE_WIDTH

    for idx in range(s_index, e_index + 1):
        partial = 0
        first = 0
        count = ENTRY_BUNDLE_WIDTH
        if idx == s_index:
            partial = partial_tile_size(0, s_index, tree_size)
            first = start % ENTRY_BUNDLE_WIDTH
            count = ENTRY_BUNDLE_WIDTH - first
            if idx == e_index:
                count = end_inc % ENTRY_BUNDLE_WIDTH - first + 1
        elif idx == e_index:
            partial = partial_tile_size(0, e_index, tree_size)
            count = end_inc % ENTRY_BUNDLE_WIDTH + 1
        yield RangeInfo(index=idx, partial=partial, first=first, n=count)


def _fmt_n(n: int) -> str:
    groups = [f"{n % 1000:03d}"]
    n //= 1000
    while n > 0:
        groups.append(f"x{n % 1000:03d}")
        n //= 1000
    return "/".join(reversed(groups))


def n_with_suffix(level: int, n: int, partial: int) -> str:
    """Return the tiles-spec "N" path element, with a partial suffix if ``partial > 0``."""
    suffix = f".p/{partial}" if partial > 0 else ""
    return f"{_fmt_n(n)}{suffix}"


def entries_path(n: int, partial: int) -> str:
    """Return the path of the nth entry bundle."""
    return f"tile/entries/{n_with_suffix(0, n, partial)}"


def tile_path(tile_level: int, tile_index: int, partial: int) -> str:
    """Return the path of the hash tile at the given tile-space coordinates."""
    return f"tile/{tile_level}/{n_with_suffix(tile_level, tile_index, partial)}"


def _parse_uint(text: str) -> int:
    if not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid unsigned integer {text!r}")
    value = int(text)
    if value > _MAX_UINT64:
        raise ValueError(f"unsigned integer {text!r} out of range")
    return value


def parse_tile_level_index_partial(level: str, index: str) -> tuple[int, int, int]:
    """Parse the level and index path elements into (level, index, partial)."""
    parsed_level = parse_tile_level(level)
    parsed_index, partial = parse_tile_index_partial(index)
    return parsed_level, parsed_index, partial


def parse_tile_level(level: str) -> int:
    """Parse a tile level, which must be an integer in [0, 63]."""
    try:
        value = _parse_uint(level)
    except ValueError:
        raise ValueError("failed to parse tile level") from None
    if value > 63:
        raise ValueError("failed to parse tile level")
    return value


def parse_tile_index_partial(index: str) -> tuple[int, int]:
    """Parse a tile index path element into (index, partial width)."""
    width = 0
    parts = index.split("/")

    if ".p" in index:
        try:
            width = _parse_uint(parts[-1])
        except ValueError:
            raise ValueError("failed to parse tile width") from None
        if width < 1 or width >= TILE_WIDTH or len(parts) < 2:
            raise ValueError("failed to parse tile width")
        parts[-2] = parts[-2].removesuffix(".p")
        parts = parts[:-1]

    if index.count("x") != len(parts) - 1 or parts[-1].startswith("x"):
        raise ValueError("failed to parse tile index")

    value = 0
    for part in parts:
        part = part.removeprefix("x")
        try:
            group = _parse_uint(part)
        except ValueError:
            raise ValueError("failed to parse tile index") from None
        if group >= 1000 or len(part) != 3:
            raise ValueError("failed to parse tile index")
        if value > (_MAX_UINT64 - group) // 1000:
            raise ValueError("failed to parse tile index")
        value = value * 1000 + group

    return value, width