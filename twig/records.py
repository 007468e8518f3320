"""Stored record types and their versioned JSON encoding.

Every record is encoded as a JSON object tagged with ``type`` and
``version``. Keys are sorted and separators compact, so the same
record always encodes to the same bytes (and thus the same digest).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable

from .errors import CorruptObject

FORMAT_VERSION = 1

COMMIT_TYPE = "commit"
INDEX_TYPE = "index"


@dataclass(frozen=True)
class StagingEntry:
    """A tracked path and the digest of its content."""

    path: str
    hash: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "hash": self.hash}

    @classmethod
    def from_dict(cls, data: Any) -> StagingEntry:
        try:
            return cls(path=str(data["path"]), hash=str(data["hash"]))
        except (KeyError, TypeError) as e:
            raise CorruptObject(f"Malformed staging entry: {data!r}") from e


@dataclass(frozen=True)
class CommitRecord:
    """One commit: a full snapshot of staged files plus a parent pointer."""

    timestamp: str
    message: str
    files: tuple[StagingEntry, ...]
    parent: str | None
    branch: str

    def file_map(self) -> dict[str, str]:
        """Path -> digest for this commit's files."""
        return {entry.path: entry.hash for entry in self.files}

    def find(self, path: str) -> StagingEntry | None:
        for entry in self.files:
            if entry.path == path:
                return entry
        return None

    def to_bytes(self) -> bytes:
        return _dump(
            {
                "type": COMMIT_TYPE,
                "version": FORMAT_VERSION,
                "timestamp": self.timestamp,
                "message": self.message,
                "files": [e.to_dict() for e in self.files],
                "parent": self.parent,
                "branch": self.branch,
            }
        )

    @classmethod
    def from_bytes(cls, raw: bytes) -> CommitRecord:
        data = _load(raw, COMMIT_TYPE)
        try:
            parent = data["parent"]
            return cls(
                timestamp=str(data["timestamp"]),
                message=str(data["message"]),
                files=tuple(StagingEntry.from_dict(f) for f in data["files"]),
                parent=str(parent) if parent else None,
                branch=str(data["branch"]),
            )
        except (KeyError, TypeError) as e:
            raise CorruptObject("Malformed commit record") from e


def encode_index(entries: Iterable[StagingEntry]) -> bytes:
    """Encode the staging index, preserving entry order."""
    return _dump(
        {
            "type": INDEX_TYPE,
            "version": FORMAT_VERSION,
            "entries": [e.to_dict() for e in entries],
        }
    )


def decode_index(raw: bytes) -> list[StagingEntry]:
    data = _load(raw, INDEX_TYPE)
    entries = data.get("entries")
    if not isinstance(entries, list):
        raise CorruptObject("Malformed staging index")
    return [StagingEntry.from_dict(e) for e in entries]


def is_commit(raw: bytes) -> bool:
    """Cheap check whether a stored object is a commit record."""
    try:
        _load(raw, COMMIT_TYPE)
    except CorruptObject:
        return False
    return True


def _dump(data: dict[str, Any]) -> bytes:
    return json.dumps(
        data, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    ).encode("utf-8")


def _load(raw: bytes, expected_type: str) -> dict[str, Any]:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CorruptObject(f"Not a {expected_type} record") from e
    if not isinstance(data, dict) or data.get("type") != expected_type:
        raise CorruptObject(f"Not a {expected_type} record")
    version = data.get("version")
    if version != FORMAT_VERSION:
        raise CorruptObject(
            f"Unsupported {expected_type} format version: {version!r}"
        )
    return data
