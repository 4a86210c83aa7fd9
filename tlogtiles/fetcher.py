"""Fetchers for log resources served over HTTP or stored on a filesystem."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

import httpx

from tlogtiles.layout import CHECKPOINT_PATH, entries_path, tile_path


class HTTPFetcher:
    """Fetches log resources from a log served over HTTP below ``root_url``.

    Missing resources (HTTP 404) raise FileNotFoundError.
    """

    def __init__(
        self,
        root_url: str | httpx.URL,
        client: httpx.Client | None = None,
        authorization: str | None = None,
    ) -> None:
        url = httpx.URL(str(root_url))
        if not str(url).endswith("/"):
            url = url.copy_with(path=url.path + "/")
        self._root = url
        self._owns_client = client is None
        self._client = client if client is not None else httpx.Client()
        self.authorization = authorization
        """Value sent in the Authorization header of every request, if set."""

    def __enter__(self) -> HTTPFetcher:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._owns_client:
            self._client.close()

    def _fetch(self, path: str) -> bytes:
        url = self._root.join(path)
        headers = {"Authorization": self.authorization} if self.authorization else {}
        try:
            response = self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise OSError(f"get({str(url)!r}): {exc}") from exc
        if response.status_code == httpx.codes.OK:
            return response.content
        if response.status_code == httpx.codes.NOT_FOUND:
            raise FileNotFoundError(f"get({str(url)!r}): not found")
        raise RuntimeError(f"get({str(url)!r}): {response.status_code}")

    def read_checkpoint(self) -> bytes:
        """Return the raw checkpoint."""
        return self._fetch(CHECKPOINT_PATH)

    def read_tile(self, level: int, index: int, partial: int) -> bytes:
        """Return the raw hash tile at the given tile coordinates."""
        return self._fetch(tile_path(level, index, partial))

    def read_entry_bundle(self, index: int, partial: int) -> bytes:
        """Return the raw entry bundle at the given bundle index."""
        return self._fetch(entries_path(index, partial))


@dataclass(frozen=True)
class FileFetcher:
    """Fetches log resources from a filesystem directory ``root``."""

    root: str | os.PathLike[str]

    def _read(self, path: str) -> bytes:
        with open(os.path.join(self.root, path), "rb") as f:
            return f.read()

    def read_checkpoint(self) -> bytes:
        """Return the raw checkpoint."""
        return self._read(CHECKPOINT_PATH)

    def read_tile(self, level: int, index: int, partial: int) -> bytes:
        """Return the raw hash tile at the given tile coordinates."""
        return self._read(tile_path(level, index, partial))

    def read_entry_bundle(self, index: int, partial: int) -> bytes:
        """Return the raw entry bundle at the given bundle index."""
        return self._read(entries_path(index, partial))