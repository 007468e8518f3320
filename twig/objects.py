"""Content-addressed object store over a KV backend."""

import hashlib
import logging
from typing import Iterator

from .errors import CorruptObject, NotFound
from .kv.base import KVStore
from .records import CommitRecord

logger = logging.getLogger(__name__)

OBJECT_KEY = "objects/%s"
OBJECT_PREFIX = "objects/"


def hash_bytes(data: bytes) -> str:
    """SHA-1 hex digest of raw bytes."""
    return hashlib.sha1(data).hexdigest()


class ObjectStore:
    """Immutable blobs and commit records keyed by their digest.

    Objects are never deleted; storing the same bytes twice keeps a
    single object.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    def put(self, data: bytes) -> str:
        """Store bytes if absent. Returns their digest."""
        digest = hash_bytes(data)
        if self.store.add(OBJECT_KEY % digest, data):
            logger.debug("stored object %s (%d bytes)", digest, len(data))
        return digest

    def get(self, digest: str) -> bytes:
        """Fetch an object's bytes. Raises NotFound if absent."""
        data = self.store.get(OBJECT_KEY % digest) if _looks_like_digest(digest) else None
        if data is None:
            raise NotFound(f"Object not found: {digest}")
        return data

    def contains(self, digest: str) -> bool:
        return _looks_like_digest(digest) and (OBJECT_KEY % digest) in self.store

    def __contains__(self, digest: str) -> bool:
        return self.contains(digest)

    def digests(self) -> Iterator[str]:
        """All stored digests."""
        for key in self.store.keys(OBJECT_PREFIX):
            yield key[len(OBJECT_PREFIX):]

    # -- Commit records --

    def put_commit(self, record: CommitRecord) -> str:
        return self.put(record.to_bytes())

    def get_commit(self, digest: str) -> CommitRecord:
        """Load a commit record. Raises NotFound for non-commit objects."""
        raw = self.get(digest)
        try:
            return CommitRecord.from_bytes(raw)
        except CorruptObject as e:
            raise NotFound(f"Not a commit: {digest}") from e

    def resolve_prefix(self, prefix: str) -> list[str]:
        """Digests starting with a hex prefix."""
        prefix = prefix.lower()
        return [d for d in self.digests() if d.startswith(prefix)]


def _looks_like_digest(value: str) -> bool:
    return (
        len(value) == 40
        and all(c in "0123456789abcdef" for c in value)
    )
