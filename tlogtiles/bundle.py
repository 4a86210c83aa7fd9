"""Hash tiles and entry bundles as serialised by the tlog-tiles spec."""

from __future__ import annotations

from dataclasses import dataclass, field

HASH_SIZE = 32
_MAX_ENTRY_SIZE = 0xFFFF


@dataclass
class HashTile:
    """A tile of Merkle tree node hashes."""

    nodes: list[bytes] = field(default_factory=list)

    def marshal(self) -> bytes:
        """Serialise the tile as concatenated hashes."""
        return b"".join(self.nodes)

    @classmethod
    def unmarshal(cls, raw: bytes) -> HashTile:
        """Parse concatenated 32-byte hashes into a tile."""
        if len(raw) % HASH_SIZE != 0:
            raise ValueError(f"{len(raw)} is not a multiple of {HASH_SIZE}")
        raw = bytes(raw)
        return cls([raw[i : i + HASH_SIZE] for i in range(0, len(raw), HASH_SIZE)])


@dataclass
class EntryBundle:
    """A sequence of log entries corresponding to a leaf tile."""

    entries: list[bytes] = field(default_factory=list)

    def marshal(self) -> bytes:
        """Serialise entries, each prefixed by its 16-bit big-endian length."""
        parts = []
        for entry in self.entries:
            if len(entry) > _MAX_ENTRY_SIZE:
                raise ValueError(f"entry of {len(entry)} bytes is too large for a bundle")
            parts.append(len(entry).to_bytes(2, "big"))
            parts.append(bytes(entry))
        return b"".join(parts)

    @classmethod
    def unmarshal(cls, raw: bytes) -> EntryBundle:
        """Parse length-prefixed entries into a bundle."""
        raw = bytes(raw)
        entries = []
        index = 0
        while index < len(raw):
            data_index = index + 2
            if data_index > len(raw):
                raise ValueError(
                    f"dangling bytes at byte index {index} in data of {len(raw)} bytes"
                )
            size = int.from_bytes(raw[index:data_index], "big")
            data_end = data_index + size
            if data_end > len(raw):
                raise ValueError(
                    f"require {size} bytes from byte index {data_index}, but size is {len(raw)}"
                )
            entries.append(raw[data_index:data_end])
            index = data_end
        return cls(entries)