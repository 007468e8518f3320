"""Working tree: ignore rules, file discovery, restore and status."""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

from .errors import InvalidOperation, NotFound
from .objects import ObjectStore, hash_bytes
from .records import StagingEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Status:
    """Classification of working-tree files against index and HEAD."""

    branch: str
    head: str | None
    staged: tuple[str, ...]
    modified: tuple[str, ...]
    untracked: tuple[str, ...]

    @property
    def clean(self) -> bool:
        return not (self.staged or self.modified or self.untracked)


def load_ignore_patterns(path: str) -> list[str]:
    """Glob patterns from an ignore file; blank and ``#`` lines skipped."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        return []
    patterns = []
    for line in lines:
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        patterns.append(line)
    return patterns


def is_ignored(path: str, patterns: Iterable[str]) -> bool:
    """Match a root-relative POSIX path against ignore patterns.

    A pattern ending in ``/`` matches that directory and everything
    below it. Patterns without a ``/`` also match the basename, so
    ``*.log`` ignores log files at any depth.
    """
    norm = path.replace(os.sep, "/")
    basename = norm.rsplit("/", 1)[-1]
    for pattern in patterns:
        if pattern.endswith("/"):
            base = pattern.rstrip("/")
            if norm == base or norm.startswith(base + "/"):
                return True
            continue
        if fnmatch.fnmatchcase(norm, pattern):
            return True
        if "/" not in pattern and fnmatch.fnmatchcase(basename, pattern):
            return True
    return False


class WorkTree:
    """The checked-out files under a repository root.

    Args:
        root: Working-tree root directory.
        repo_dir: Name of the repository directory inside root; it is
            never listed, staged or overwritten.
        ignore_file: Name of the ignore-pattern file inside root.
    """

    def __init__(self, root: str, *, repo_dir: str, ignore_file: str) -> None:
        self.root = os.path.abspath(root)
        self.repo_dir = repo_dir
        self.ignore_path = os.path.join(self.root, ignore_file)

    def ignore_patterns(self) -> list[str]:
        return load_ignore_patterns(self.ignore_path)

    def relative(self, path: str) -> str:
        """Root-relative POSIX path for a user-supplied path.

        Relative paths are taken relative to the current directory.

        Raises InvalidOperation for paths outside the working tree or
        inside the repository directory.
        """
        absolute = os.path.abspath(path)
        rel = os.path.relpath(absolute, self.root)
        if rel == os.curdir:
            return ""
        if rel == os.pardir or rel.startswith(os.pardir + os.sep):
            raise InvalidOperation(f"Path is outside the working tree: {path}")
        rel = rel.replace(os.sep, "/")
        if self._in_repo_dir(rel):
            raise InvalidOperation(f"Path is inside the repository directory: {path}")
        return rel

    def absolute(self, rel_path: str) -> str:
        return os.path.join(self.root, *rel_path.split("/"))

    def _in_repo_dir(self, rel_path: str) -> bool:
        return rel_path == self.repo_dir or rel_path.startswith(self.repo_dir + "/")

    def iter_files(self, start: str = "", patterns: list[str] | None = None) -> Iterator[str]:
        """Root-relative paths of non-ignored files at or below start."""
        if patterns is None:
            patterns = self.ignore_patterns()
        top = self.absolute(start) if start else self.root
        if os.path.isfile(top):
            if not is_ignored(start, patterns):
                yield start
            return
        for dirpath, dirnames, filenames in os.walk(top):
            rel_dir = os.path.relpath(dirpath, self.root).replace(os.sep, "/")
            if rel_dir == ".":
                rel_dir = ""
            dirnames[:] = sorted(
                d
                for d in dirnames
                if not self._in_repo_dir(_join(rel_dir, d))
                and not is_ignored(_join(rel_dir, d), patterns)
            )
            for filename in sorted(filenames):
                rel_path = _join(rel_dir, filename)
                if is_ignored(rel_path, patterns):
                    continue
                yield rel_path

    def read(self, rel_path: str) -> bytes:
        path = self.absolute(rel_path)
        try:
            with open(path, "rb") as f:
                return f.read()
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFound(f"No such file: {rel_path}") from e
        except PermissionError as e:
            raise InvalidOperation(f"Cannot read {rel_path}: {e.strerror}") from e

    def digest(self, rel_path: str) -> str:
        return hash_bytes(self.read(rel_path))

    def write(self, rel_path: str, data: bytes) -> None:
        path = self.absolute(rel_path)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "wb") as f:
                f.write(data)
        except (FileExistsError, NotADirectoryError) as e:
            raise InvalidOperation(f"Cannot write {rel_path}: a parent is a file") from e
        except IsADirectoryError as e:
            raise InvalidOperation(f"Cannot write {rel_path}: it is a directory") from e
        except PermissionError as e:
            raise InvalidOperation(f"Cannot write {rel_path}: {e.strerror}") from e

    def check_writable(self, rel_paths: Iterable[str]) -> None:
        """Raise InvalidOperation if any path clashes with a file or directory.

        A path clashes when it names an existing directory, when one of
        its parents is an existing file, or when another path in the
        same set is one of its parents.
        """
        rel_paths = list(rel_paths)
        wanted = set(rel_paths)
        clashes: list[str] = []
        for rel_path in rel_paths:
            parts = rel_path.split("/")
            parents = ["/".join(parts[:i]) for i in range(1, len(parts))]
            if os.path.isdir(self.absolute(rel_path)):
                clashes.append(rel_path)
            elif any(p in wanted for p in parents):
                clashes.append(rel_path)
            elif any(
                os.path.lexists(self.absolute(p)) and not os.path.isdir(self.absolute(p))
                for p in parents
            ):
                clashes.append(rel_path)
        if clashes:
            raise InvalidOperation(
                f"Files and directories clash at: {', '.join(sorted(clashes))}"
            )

    def restore(self, objects: ObjectStore, files: Iterable[StagingEntry]) -> None:
        """Write each entry's blob to its path.

        Blobs are fetched and paths checked before anything is written,
        so a missing object or a file/directory clash leaves the tree
        untouched. Files not listed are left alone.
        """
        contents = [(entry.path, objects.get(entry.hash)) for entry in files]
        self.check_writable(rel_path for rel_path, _ in contents)
        for rel_path, data in contents:
            self.write(rel_path, data)
        logger.debug("restored %d files", len(contents))

    def status(
        self,
        staged: Iterable[str],
        committed: Mapping[str, str],
        *,
        branch: str,
        head: str | None,
    ) -> Status:
        """Classify every non-ignored file on disk.

        Args:
            staged: Paths in the staging index.
            committed: Path -> digest of the latest commit.
        """
        staged = list(staged)
        staged_set = set(staged)
        modified: list[str] = []
        untracked: list[str] = []
        for rel_path in self.iter_files():
            if rel_path in staged_set:
                continue
            if rel_path not in committed:
                untracked.append(rel_path)
            elif self.digest(rel_path) != committed[rel_path]:
                modified.append(rel_path)
        return Status(
            branch=branch,
            head=head,
            staged=tuple(staged),
            modified=tuple(modified),
            untracked=tuple(untracked),
        )


def _join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name
