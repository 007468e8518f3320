"""Staging index: ordered path -> digest entries pending the next commit."""

import logging
from typing import Iterable

from .kv.base import KVStore
from .records import StagingEntry, decode_index, encode_index

logger = logging.getLogger(__name__)

INDEX_KEY = "index"


class StagingIndex:
    """Path-keyed staging area persisted under the ``index`` key.

    Entries are loaded once when constructed and held in memory;
    ``save()`` writes the whole index back. Staging is path based:
    directories are not entries, every file is a flat path.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store
        raw = store.get(INDEX_KEY)
        self._entries: list[StagingEntry] = decode_index(raw) if raw else []

    def stage(self, path: str, digest: str) -> None:
        """Add or overwrite the entry for path, keeping its position."""
        for i, entry in enumerate(self._entries):
            if entry.path == path:
                self._entries[i] = StagingEntry(path, digest)
                return
        self._entries.append(StagingEntry(path, digest))

    def snapshot(self) -> tuple[StagingEntry, ...]:
        """Staged entries in staging order."""
        return tuple(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def stage_all(self, entries: Iterable[StagingEntry]) -> None:
        """Stage every entry, upserting over what is already staged."""
        for entry in entries:
            self.stage(entry.path, entry.hash)

    def save(self) -> None:
        self.store.set(INDEX_KEY, encode_index(self._entries))
        logger.debug("saved index with %d entries", len(self._entries))

    def get(self, path: str) -> str | None:
        for entry in self._entries:
            if entry.path == path:
                return entry.hash
        return None

    def paths(self) -> list[str]:
        return [entry.path for entry in self._entries]

    def __contains__(self, path: object) -> bool:
        return any(entry.path == path for entry in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)
