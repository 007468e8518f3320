"""Abstract KV store interface."""

from abc import ABC, abstractmethod
from typing import Iterable, Mapping


class KVStore(ABC):
    """Key-value store operating on bytes only.

    Keys are slash-separated names relative to the repository
    directory (``HEAD``, ``index``, ``objects/<digest>``,
    ``refs/heads/<branch>``). Serialization is handled at higher
    layers (e.g., ``twig.records``).
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Get bytes value for key, or None if not found."""

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        """Set bytes value for key."""

    @abstractmethod
    def get_many(self, *args: str) -> Mapping[str, bytes]:
        """Get multiple keys, returning only keys that exist."""

    @abstractmethod
    def set_many(self, **kwargs: bytes) -> None:
        """Set multiple key-value pairs."""

    @abstractmethod
    def keys(self, prefix: str = "") -> Iterable[str]:
        """Iterate over all keys starting with prefix."""

    @abstractmethod
    def __contains__(self, key: str) -> bool:
        """Check if key exists in store."""

    @abstractmethod
    def remove(self, key: str) -> bool:
        """Remove a key. Returns False if it was not present."""

    @abstractmethod
    def add(self, key: str, value: bytes) -> bool:
        """Set value only if key does not exist yet.

        Returns True if the value was written, False otherwise.
        """

    def close(self) -> None:
        """Release any handles held by the backend."""
