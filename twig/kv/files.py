"""Plain-file KV store: one file per key under a directory."""

import logging
import os
import tempfile
from typing import Iterable, Mapping

from ..errors import InvalidOperation, NotARepository
from .base import KVStore

logger = logging.getLogger(__name__)

# Scratch files start with this; no key part may.
TEMP_PREFIX = ".~"


class Files(KVStore):
    """KV store laid out as ordinary files.

    Key ``refs/heads/main`` lives at ``<directory>/refs/heads/main``.
    This is the layout a repository uses on disk, so the state stays
    readable with nothing more than ``cat``.

    Args:
        directory: Repository directory (e.g. ``<root>/.twig``).
        create: Create the directory if missing. When False, a missing
            directory raises ``NotARepository``.
    """

    def __init__(self, directory: str, *, create: bool = False) -> None:
        self.directory = os.path.abspath(directory)
        if create:
            os.makedirs(self.directory, exist_ok=True)
        elif not os.path.isdir(self.directory):
            raise NotARepository(f"Not a twig repository: {self.directory}")

    def _path(self, key: str) -> str:
        parts = key.split("/")
        if (
            not key
            or key.startswith("/")
            or any(p in ("", ".", "..") or p.startswith(TEMP_PREFIX) for p in parts)
        ):
            raise ValueError(f"Invalid key: {key!r}")
        return os.path.join(self.directory, *parts)

    def _make_parent(self, key: str, path: str) -> None:
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
        except (FileExistsError, NotADirectoryError) as e:
            raise InvalidOperation(f"Cannot write {key}: a parent is a file") from e
        except PermissionError as e:
            raise InvalidOperation(f"Cannot write {path}: {e.strerror}") from e

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return None
        except PermissionError as e:
            raise InvalidOperation(f"Cannot read {path}: {e.strerror}") from e

    def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        path = self._path(key)
        self._make_parent(key, path)
        # Write beside the target and rename so readers never see a
        # half-written file.
        fd, tmp = tempfile.mkstemp(dir=os.path.dirname(path), prefix=TEMP_PREFIX)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as e:
            os.unlink(tmp)
            if isinstance(e, IsADirectoryError):
                raise InvalidOperation(f"Cannot write {key}: it is a directory") from e
            if isinstance(e, PermissionError):
                raise InvalidOperation(f"Cannot write {path}: {e.strerror}") from e
            raise
        logger.debug("wrote %s (%d bytes)", key, len(value))

    def get_many(self, *args: str) -> Mapping[str, bytes]:
        return {k: v for k in args if (v := self.get(k)) is not None}

    def set_many(self, **kwargs: bytes) -> None:
        for key, value in kwargs.items():
            if not isinstance(value, bytes):
                raise TypeError(f"Expected bytes for {key}, got {type(value).__name__}")
        for key, value in kwargs.items():
            self.set(key, value)

    def keys(self, prefix: str = "") -> Iterable[str]:
        found: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.directory):
            dirnames.sort()
            rel_dir = os.path.relpath(dirpath, self.directory)
            for filename in filenames:
                if filename.startswith(TEMP_PREFIX):
                    continue
                rel = filename if rel_dir == "." else os.path.join(rel_dir, filename)
                key = rel.replace(os.sep, "/")
                if key.startswith(prefix):
                    found.append(key)
        return sorted(found)

    def __contains__(self, key: str) -> bool:
        return os.path.isfile(self._path(key))

    def remove(self, key: str) -> bool:
        path = self._path(key)
        try:
            os.unlink(path)
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            return False
        except PermissionError as e:
            raise InvalidOperation(f"Cannot remove {path}: {e.strerror}") from e
        logger.debug("removed %s", key)
        return True

    def add(self, key: str, value: bytes) -> bool:
        if not isinstance(value, bytes):
            raise TypeError(f"Expected bytes, got {type(value).__name__}")
        path = self._path(key)
        self._make_parent(key, path)
        try:
            with open(path, "xb") as f:
                f.write(value)
        except FileExistsError:
            if os.path.isdir(path):
                raise InvalidOperation(f"Cannot write {key}: it is a directory")
            return False
        except PermissionError as e:
            raise InvalidOperation(f"Cannot write {path}: {e.strerror}") from e
        logger.debug("created %s (%d bytes)", key, len(value))
        return True
