"""Copying the static resources of a tlog-tiles log from a source to a target."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Protocol

from tlogtiles.checkpoint import parse_checkpoint
from tlogtiles.layout import TILE_HEIGHT, TILE_WIDTH, bundle_range

logger = logging.getLogger(__name__)


class Source(Protocol):
    """Something that can read the static resources of a log."""

    def read_checkpoint(self) -> bytes: ...

    def read_tile(self, level: int, index: int, partial: int) -> bytes: ...

    def read_entry_bundle(self, index: int, partial: int) -> bytes: ...


class Target(Protocol):
    """Something that can store the static resources of a log."""

    def read_checkpoint(self) -> bytes: ...

    def write_checkpoint(self, data: bytes) -> None: ...

    def write_tile(self, level: int, index: int, partial: int, data: bytes) -> None: ...

    def write_entry_bundle(self, index: int, partial: int, data: bytes) -> None: ...


@dataclass(frozen=True)
class Job:
    """A run of ``n`` tiles' worth of nodes at one tree level, starting at ``start``."""

    level: int
    start: int
    n: int

    def __str__(self) -> str:
        return f"Level: {self.level}, Range: [{self.start}, {self.start + self.n})"


def jobs(src_size: int, target_size: int, stride: int) -> Iterator[Job]:
    """Yield the jobs that bring a log of ``target_size`` up to ``src_size``.

    Each level of tiles is split into runs of ``stride`` entries; a run starting in
    the middle of a tile first covers only the rest of that tile, so that later runs
    are tile-aligned.
    """
    if stride < 1:
        raise ValueError(f"stride must be positive, got {stride}")
    start, ext, level = target_size, src_size, 0
    while ext > 0:
        pos = start
        while pos < ext:
            n = stride
            remainder = pos % TILE_WIDTH
            if remainder:
                n = TILE_WIDTH - remainder
            n = min(n, ext - pos)
            yield Job(level=level, start=pos, n=n)
            pos += n
        start >>= TILE_HEIGHT
        ext >>= TILE_HEIGHT
        level += 1


def calc_num_resources(src_size: int, target_size: int, stride: int) -> int:
    """Return how many tiles and entry bundles must be copied."""
    leaf_bundles = 0
    tiles = 0
    for job in jobs(src_size, target_size, stride):
        n_tiles = (job.n + TILE_WIDTH - 1) // TILE_WIDTH
        tiles += n_tiles
        if job.level == 0:
            leaf_bundles += n_tiles
    return leaf_bundles + tiles


def _fetch_and_parse(read: Callable[[], bytes]) -> tuple[bytes, int]:
    raw = read()
    _, size, _ = parse_checkpoint(raw)
    return raw, size


class Mirror:
    """Copies a tlog-tiles log from ``source`` to ``target``.

    The checkpoint is written only once every tile and bundle has been copied.
    Failed copies are retried a few times before giving up. Only the data is
    copied; nothing is checked for consistency or correctness.
    """

    retry_attempts = 10
    """Attempts made at copying each resource."""

    retry_delay = 0.1
    """Seconds before the first retry; the delay doubles after each attempt."""

    def __init__(self, source: Source, target: Target, num_workers: int = 30) -> None:
        if num_workers < 1:
            raise ValueError(f"num_workers must be at least 1, got {num_workers}")
        self.source = source
        self.target = target
        self.num_workers = num_workers
        self._lock = threading.Lock()
        self._total = 0
        self._fetched = 0

    def progress(self) -> tuple[int, int]:
        """Return (resources to copy, resources copied so far)."""
        with self._lock:
            return self._total, self._fetched

    def run(self) -> None:
        """Copy every missing resource, then the source checkpoint."""
        try:
            source_cp, source_size = _fetch_and_parse(self.source.read_checkpoint)
        except Exception as exc:
            raise RuntimeError(f"failed to fetch source checkpoint size: {exc}") from exc
        try:
            _, target_size = _fetch_and_parse(self.target.read_checkpoint)
        except FileNotFoundError:
            target_size = 0
        except Exception as exc:
            raise RuntimeError(f"failed to read checkpoint in target: {exc}") from exc

        if target_size > source_size:
            raise ValueError(
                f"target log size {target_size} is larger than source log size {source_size}"
            )
        delta = source_size - target_size
        stride = delta // self.num_workers
        remainder = stride % TILE_WIDTH
        if remainder:
            stride += TILE_WIDTH - remainder

        logger.info(
            "Source log size: %d, target log size: %d, delta %d, stride: %d",
            source_size,
            target_size,
            delta,
            stride,
        )
        if delta == 0:
            return
        stride = max(stride, TILE_WIDTH)

        with self._lock:
            self._total = calc_num_resources(source_size, target_size, stride)
            self._fetched = 0

        pending = jobs(source_size, target_size, stride)
        pending_lock = threading.Lock()

        def next_job() -> Job | None:
            with pending_lock:
                job = next(pending, None)
            if job is None:
                logger.info("No more work")
            else:
                logger.info("Job: %s", job)
            return job

        def work(worker: int) -> None:
            while (job := next_job()) is not None:
                logger.info("Worker %d: working on %s", worker, job)
                size_at_level = source_size >> (job.level * TILE_HEIGHT)
                for info in bundle_range(job.start, job.n, size_at_level):
                    self._retry(self._copy_tile, job.level, info.index, info.partial)
                    if job.level == 0:
                        self._retry(self._copy_bundle, info.index, info.partial)

        first_error: BaseException | None = None
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.num_workers) as pool:
            futures = [pool.submit(work, i) for i in range(self.num_workers)]
            for future in concurrent.futures.as_completed(futures):
                error = future.exception()
                if error is not None and first_error is None:
                    first_error = error
        if first_error is not None:
            raise RuntimeError(
                f"failed to migrate static resources: {first_error}"
            ) from first_error

        self.target.write_checkpoint(source_cp)

    def _retry(self, copy: Callable[..., None], *args: int) -> None:
        delay = self.retry_delay
        for attempt in range(1, self.retry_attempts + 1):
            try:
                copy(*args)
                return
            except Exception as exc:
                logger.warning("Copy attempt %d failed: %s", attempt, exc)
                if attempt == self.retry_attempts:
                    raise
            time.sleep(delay)
            delay *= 2

    def _copy_tile(self, level: int, index: int, partial: int) -> None:
        data = self.source.read_tile(level, index, partial)
        self.target.write_tile(level, index, partial, data)
        with self._lock:
            self._fetched += 1

    def _copy_bundle(self, index: int, partial: int) -> None:
        data = self.source.read_entry_bundle(index, partial)
        self.target.write_entry_bundle(index, partial, data)
        with self._lock:
            self._fetched += 1