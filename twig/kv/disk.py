"""Disk-backed KV store using diskcache."""

from typing import Iterable, Mapping, cast

from .base import KVStore

ONE_GB = 1024 * 1024 * 1024


class Disk(KVStore):
    """KV store backed by diskcache (SQLite + mmap).

    Keeps the whole repository state in one cache directory instead
    of one file per key.
    """

    def __init__(self, directory: str, size_limit: int = ONE_GB) -> None:
        from diskcache import Cache as DiskCache

        # The object store only grows, so nothing may be evicted.
        self.store = DiskCache(
            directory, size_limit=size_limit, eviction_policy="none"
        )

    def get(self, key: str) -> bytes | None:
        return cast(bytes | None, self.store.get(key))

    def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        self.store[key] = value

    def get_many(self, *args: str) -> Mapping[str, bytes]:
        return {k: v for k in args if (v := self.get(k)) is not None}

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            if not isinstance(value, bytes):
                raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
        with self.store.transact():
            for key, value in kwargs.items():
                self.set(key, value)

    def keys(self, prefix: str = "") -> Iterable[str]:
        return sorted(
            str(key) for key in self.store.iterkeys() if str(key).startswith(prefix)
        )

    def __contains__(self, key: str) -> bool:
        return key in self.store

    def remove(self, key: str) -> bool:
        return bool(self.store.delete(key, retry=False))

    def add(self, key: str, value: bytes) -> bool:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        return bool(self.store.add(key, value))

    def close(self) -> None:
        self.store.close()
