"""Tile layout, bundle encoding, Merkle hashing, publication awaiting and mirroring for tlog-tiles logs."""

__version__ = "0.1.0"