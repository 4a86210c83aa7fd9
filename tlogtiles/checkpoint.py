"""Minimal, signature-free parsing of checkpoint bodies."""

from __future__ import annotations

import base64
import binascii
import re

_MAX_UINT64 = (1 << 64) - 1
_DIGITS = re.compile(r"[0-9]+")


class CheckpointError(ValueError):
    """Raised when a checkpoint body cannot be parsed."""


def parse_checkpoint(raw: bytes | None) -> tuple[str, int, bytes]:
    """Parse a checkpoint body into (origin, size, root hash).

    Signatures are not verified: only the origin, size and hash lines are read.
    """
    raw = bytes(raw or b"")
    parts = raw.split(b"\n", 3)
    if len(parts) != 4:
        raise CheckpointError(f"invalid checkpoint: {raw!r}")

    origin_line, size_line, hash_line = parts[0], parts[1], parts[2]
    try:
        origin = origin_line.decode("utf-8")
        size_text = size_line.decode("ascii")
        hash_text = hash_line.decode("ascii")
    except UnicodeDecodeError as exc:
        raise CheckpointError(f"invalid checkpoint: {exc}") from exc

    if not _DIGITS.fullmatch(size_text) or int(size_text) > _MAX_UINT64:
        raise CheckpointError(f"invalid checkpoint size {size_text!r}")
    size = int(size_text)

    try:
        root_hash = base64.b64decode(hash_text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CheckpointError(f"invalid checkpoint hash {hash_text!r}: {exc}") from exc

    return origin, size, root_hash