"""Mirroring a tlog-tiles log into a directory on a POSIX filesystem."""

from __future__ import annotations

import argparse
import logging
import math
import os
import sys
import threading
from collections.abc import Sequence
from dataclasses import dataclass

from tlogtiles.fetcher import HTTPFetcher
from tlogtiles.layout import CHECKPOINT_PATH, entries_path, tile_path
from tlogtiles.mirror import Mirror

logger = logging.getLogger(__name__)

_PROGRESS_INTERVAL = 1.0


@dataclass(frozen=True)
class PosixTarget:
    """Stores log resources as files below the directory ``root``."""

    root: str | os.PathLike[str]

    def read_checkpoint(self) -> bytes:
        """Return the stored checkpoint; raises FileNotFoundError if there is none."""
        with open(os.path.join(self.root, CHECKPOINT_PATH), "rb") as f:
            return f.read()

    def write_checkpoint(self, data: bytes) -> None:
        """Store the checkpoint."""
        self._store(CHECKPOINT_PATH, data)

    def write_tile(self, level: int, index: int, partial: int, data: bytes) -> None:
        """Store a hash tile."""
        self._store(tile_path(level, index, partial), data)

    def write_entry_bundle(self, index: int, partial: int, data: bytes) -> None:
        """Store an entry bundle."""
        self._store(entries_path(index, partial), data)

    def _store(self, path: str, data: bytes) -> None:
        full_path = os.path.join(self.root, path)
        directory = os.path.dirname(full_path)
        if directory:
            os.makedirs(directory, mode=0o755, exist_ok=True)
        with open(full_path, "wb") as f:
            f.write(data)


def format_progress(total: int, done: int) -> str:
    """Describe how many of ``total`` resources have been copied."""
    if total == done == 0:
        percent = 100.0
    elif total == 0:
        percent = math.inf
    else:
        percent = done * 100 / total
    return f"Progress: {done} of {total} resources ({percent:.2f}%)"


def _report_progress(mirror: Mirror, stop: threading.Event) -> None:
    while not stop.wait(_PROGRESS_INTERVAL):
        logger.info(format_progress(*mirror.progress()))


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Mirror a tlog-tiles log into a POSIX filesystem."
    )
    parser.add_argument("--storage_dir", default="", help="Root directory to store log data.")
    parser.add_argument("--source_url", default="", help="Base URL for the source log.")
    parser.add_argument(
        "--num_workers", type=int, default=30, help="Number of mirroring worker threads."
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Mirror the log at --source_url into --storage_dir; return the exit status."""
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    with HTTPFetcher(args.source_url) as source:
        try:
            mirror = Mirror(source, PosixTarget(args.storage_dir), args.num_workers)
        except ValueError as exc:
            logger.error("Invalid configuration: %s", exc)
            return 1
        stop = threading.Event()
        reporter = threading.Thread(
            target=_report_progress, args=(mirror, stop), name="mirror-progress", daemon=True
        )
        reporter.start()
        try:
            mirror.run()
        except Exception as exc:
            logger.error("Failed to mirror log: %s", exc)
            return 1
        finally:
            stop.set()
            reporter.join()

    logger.info(format_progress(*mirror.progress()))
    logger.info("Log mirrored successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())