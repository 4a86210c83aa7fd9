"""Blocking until sequenced entries are committed to by a published checkpoint."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from tlogtiles.checkpoint import CheckpointError, parse_checkpoint

logger = logging.getLogger(__name__)


class PublicationAwaiter:
    """Lets callers block until a log index is covered by a published checkpoint.

    A background thread polls ``read_checkpoint`` every ``poll_period`` seconds while
    there are callers waiting, and releases every caller whose index is smaller than
    the size of the fetched checkpoint. A single long-lived instance should be shared.
    """

    def __init__(self, read_checkpoint: Callable[[], bytes], poll_period: float) -> None:
        self._read_checkpoint = read_checkpoint
        self._poll_period = poll_period
        self._lock = threading.Lock()
        self._waiters: list[tuple[int, concurrent.futures.Future]] = []
        self._size = 0
        self._checkpoint: bytes | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> PublicationAwaiter:
        """Start the polling thread; calling it again has no effect."""
        with self._lock:
            if self._thread is None:
                self._thread = threading.Thread(
                    target=self._poll_loop, name="publication-awaiter", daemon=True
                )
                self._thread.start()
        return self

    def close(self) -> None:
        """Stop polling and fail every caller still waiting."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._release_error(RuntimeError("publication awaiter closed"))

    def __enter__(self) -> PublicationAwaiter:
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def await_index(
        self, future: Callable[[], Any], timeout: float | None = None
    ) -> tuple[Any, bytes]:
        """Resolve ``future`` and wait until its index is published.

        ``future`` returns either an int or an object with an ``index`` attribute.
        Returns that result together with a checkpoint committing to it.
        Raises TimeoutError if ``timeout`` seconds pass first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        result = future()
        index = getattr(result, "index", result)
        return result, self._await(index, deadline)

    def _await(self, index: int, deadline: float | None) -> bytes:
        waiter: concurrent.futures.Future = concurrent.futures.Future()
        entry = (index, waiter)
        with self._lock:
            if self._size > index and self._checkpoint is not None:
                return self._checkpoint
            if self._stop.is_set():
                raise RuntimeError("publication awaiter closed")
            self._waiters.append(entry)

        remaining = None if deadline is None else deadline - time.monotonic()
        if remaining is not None and remaining <= 0:
            self._discard(entry)
            if not waiter.done():
                raise TimeoutError(f"timed out waiting for index {index} to be published")
        try:
            return waiter.result(timeout=remaining)
        except concurrent.futures.TimeoutError:
            self._discard(entry)
            raise TimeoutError(
                f"timed out waiting for index {index} to be published"
            ) from None

    def _discard(self, entry: tuple[int, concurrent.futures.Future]) -> None:
        with self._lock:
            if entry in self._waiters:
                self._waiters.remove(entry)

    def _poll_loop(self) -> None:
        while not self._stop.wait(self._poll_period):
            with self._lock:
                has_clients = bool(self._waiters)
            if not has_clients:
                continue
            try:
                raw = self._read_checkpoint()
            except FileNotFoundError:
                raw = b""
            except Exception as exc:  # the callback may fail in any way
                error = RuntimeError(f"read checkpoint: {exc}")
                error.__cause__ = exc
                self._release_error(error)
                continue
            try:
                _, size, _ = parse_checkpoint(raw)
            except CheckpointError as exc:
                self._release_error(exc)
                continue
            self._release(size, raw)
        logger.info("PublicationAwaiter exiting")

    def _release_error(self, error: BaseException) -> None:
        with self._lock:
            waiters, self._waiters = self._waiters, []
        for _, waiter in waiters:
            if not waiter.done():
                waiter.set_exception(error)

    def _release(self, size: int, checkpoint: bytes) -> None:
        with self._lock:
            self._size = size
            self._checkpoint = checkpoint
            ready = [w for i, w in self._waiters if i < size]
            self._waiters = [(i, w) for i, w in self._waiters if i >= size]
        for waiter in ready:
            if not waiter.done():
                waiter.set_result(checkpoint)