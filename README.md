# tlogtiles

Building blocks for working with logs served in the tlog-tiles layout:

- `tlogtiles.layout` – tile and entry bundle paths, partial tile sizes,
  node-to-tile addressing, path parsing and bundle ranges.
- `tlogtiles.bundle` – `HashTile` and `EntryBundle` encoding and decoding.
- `tlogtiles.checkpoint` – `parse_checkpoint`, which reads the origin, size and
  root hash from a checkpoint body (signatures are not checked).
- `tlogtiles.merkle` – RFC 6962 hashing (`hash_leaf`, `hash_children`,
  `empty_root`, `merkle_root`) and `range_nodes` for compact ranges.
- `tlogtiles.client` – a tile-backed `NodeCache`, plus `fetch_range_nodes`,
  `fetch_leaf_hashes` and `get_entry_bundle`.
- `tlogtiles.fetcher` – `HTTPFetcher` and `FileFetcher` for reading log resources.
- `tlogtiles.awaiter` – `PublicationAwaiter`, which blocks until an index is
  covered by a published checkpoint.
- `tlogtiles.options` – `AppendOptions` and `WitnessOptions`: batching, pushback,
  checkpoint interval, witness and add-decorator settings.
- `tlogtiles.mirror` – `Mirror`, which copies a log's tiles, bundles and
  checkpoint from a source to a target.
- `tlogtiles.mirror_posix` – `PosixTarget` and the `tlogtiles-mirror-posix` command.

## Installing

```
pip install tlogtiles
```

## Paths and tiles

```python
from tlogtiles.layout import tile_path, entries_path, parse_tile_level_index_partial

tile_path(0, 1234067, 8)          # 'tile/0/x001/x234/067.p/8'
entries_path(1234067, 8)          # 'tile/entries/x001/x234/067.p/8'
parse_tile_level_index_partial("0", "x001/x234/067.p/8")   # (0, 1234067, 8)
```

`bundle_range(start, n, tree_size)` yields one `RangeInfo` for each entry bundle
needed to cover `n` entries from `start`, clipped to the tree size. Malformed
paths passed to the `parse_*` functions raise `ValueError`.

## Reading a log

```python
from tlogtiles.fetcher import HTTPFetcher
from tlogtiles.client import get_entry_bundle, fetch_leaf_hashes
from tlogtiles.checkpoint import parse_checkpoint

with HTTPFetcher("https://log.example.com/") as fetcher:
    origin, size, root_hash = parse_checkpoint(fetcher.read_checkpoint())
    bundle = get_entry_bundle(fetcher.read_entry_bundle, 0, size)
    hashes = fetch_leaf_hashes(fetcher.read_tile, 0, 4, size)
```

`HTTPFetcher` takes an optional `httpx.Client` and an optional value for the
`Authorization` header. A log stored on disk is read the same way through
`FileFetcher(root)`. Missing resources raise `FileNotFoundError`, whichever
fetcher is used.

## Waiting for publication

```python
from tlogtiles.awaiter import PublicationAwaiter

with PublicationAwaiter(fetcher.read_checkpoint, poll_period=1.0) as awaiter:
    result, checkpoint = awaiter.await_index(lambda: 41, timeout=30)
```

The future may return an int or an object with an `index` attribute. While
callers are waiting, the awaiter polls the checkpoint and releases each caller
whose index is below the checkpoint size. A failed read or an unparseable
checkpoint fails every waiting caller; `TimeoutError` is raised when the
timeout passes first.

## Mirroring a log to a directory

```
tlogtiles-mirror-posix --source_url https://log.example.com/ --storage_dir ./mirror --num_workers 30
```

Tiles and entry bundles are copied by a pool of worker threads, each copy being
retried with a doubling delay before giving up; the source checkpoint is written
to the target only once every resource has been copied. Progress is logged every
second. Copying starts from the size of the checkpoint already in the target, so
running the command again only copies what the target does not yet have. No
consistency or correctness checks are made on the copied data.

## What this package does not do

It reads, lays out and copies tlog-tiles logs, but does not run a log: there is
no appender that sequences and integrates entries, no storage backend, and no
HTTP server for adding entries. `AppendOptions` only holds settings for such a
component. Checkpoint signatures are neither created nor verified, and there are
no inclusion or consistency proof builders or verifiers.