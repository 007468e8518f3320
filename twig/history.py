"""Commit graph: creating commits and walking the parent chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Iterator, Literal

from .diff import DiffLine, diff_lines
from .errors import CorruptHistory, InvalidOperation, NotFound, NothingToCommit
from .index import StagingIndex
from .objects import ObjectStore
from .records import CommitRecord
from .refs import Refs

logger = logging.getLogger(__name__)

MIN_PREFIX = 4

Clock = Callable[[], str]


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass(frozen=True)
class LogEntry:
    digest: str
    record: CommitRecord


@dataclass(frozen=True)
class GraphLine:
    """One commit in the rendered graph, with its tree connector."""

    digest: str
    record: CommitRecord
    prefix: str

    @property
    def short(self) -> str:
        return self.digest[:7]


@dataclass(frozen=True)
class FileChange:
    """How one file of a commit differs from the parent commit."""

    path: str
    status: Literal["added", "modified", "unchanged"]
    diff: tuple[DiffLine, ...] = ()


@dataclass(frozen=True)
class CommitDiff:
    digest: str
    record: CommitRecord
    initial: bool
    files: tuple[FileChange, ...] = field(default_factory=tuple)


class History:
    """Builds, persists and walks the singly-parented commit chain."""

    def __init__(
        self,
        objects: ObjectStore,
        refs: Refs,
        *,
        clock: Clock = utc_timestamp,
    ) -> None:
        self.objects = objects
        self.refs = refs
        self.clock = clock

    def commit(self, index: StagingIndex, message: str) -> str:
        """Record the staged files as a new commit on the current branch.

        Stores the record, advances the current branch (or the detached
        HEAD) and clears the index. The caller persists the index.

        Returns:
            The new commit digest.

        Raises:
            NothingToCommit: If nothing is staged.
            InvalidOperation: If the message is blank.
        """
        if not message or not message.strip():
            raise InvalidOperation("Commit message must not be empty")
        files = index.snapshot()
        if not files:
            raise NothingToCommit("Nothing to commit; stage files with 'twig add'")

        record = CommitRecord(
            timestamp=self.clock(),
            message=message,
            files=files,
            parent=self.refs.current_head(),
            branch=self.refs.current_branch(),
        )
        digest = self.objects.put_commit(record)
        self.refs.advance(digest)
        index.clear()
        logger.info("committed %s on %s: %s", digest[:7], record.branch, message)
        return digest

    def log(self, start: str | None = None) -> Iterator[LogEntry]:
        """Yield commits from start (default: HEAD) back to the root.

        Raises CorruptHistory if a commit is reached twice.
        """
        cursor = start if start is not None else self.refs.current_head()
        visited: set[str] = set()
        while cursor is not None:
            if cursor in visited:
                raise CorruptHistory(f"Commit {cursor} appears twice in its own history")
            visited.add(cursor)
            record = self.objects.get_commit(cursor)
            yield LogEntry(cursor, record)
            cursor = record.parent

    def graph(self, start: str | None = None) -> list[GraphLine]:
        """The log rendered as a tree; always a single path."""
        lines: list[GraphLine] = []
        prefix = ""
        for entry in self.log(start):
            lines.append(GraphLine(entry.digest, entry.record, prefix + "└── "))
            prefix += "    "
        return lines

    def resolve_commit(self, ref: str) -> str:
        """Expand a full or abbreviated digest to a stored commit digest.

        Raises:
            NotFound: If no commit matches.
            InvalidOperation: If an abbreviation matches several commits.
        """
        ref = ref.strip().lower()
        if self.objects.contains(ref):
            self.objects.get_commit(ref)
            return ref
        if len(ref) < MIN_PREFIX or any(c not in "0123456789abcdef" for c in ref):
            raise NotFound(f"Commit not found: {ref}")
        matches = []
        for digest in self.objects.resolve_prefix(ref):
            try:
                self.objects.get_commit(digest)
            except NotFound:
                continue
            matches.append(digest)
        if not matches:
            raise NotFound(f"Commit not found: {ref}")
        if len(matches) > 1:
            raise InvalidOperation(f"Ambiguous commit prefix: {ref}")
        return matches[0]

    def show(self, ref: str) -> CommitDiff:
        """Per-file changes a commit introduced relative to its parent."""
        digest = self.resolve_commit(ref)
        record = self.objects.get_commit(digest)

        if record.parent is None:
            return CommitDiff(
                digest=digest,
                record=record,
                initial=True,
                files=tuple(FileChange(e.path, "added") for e in record.files),
            )

        parent = self.objects.get_commit(record.parent)
        changes: list[FileChange] = []
        for entry in record.files:
            previous = parent.find(entry.path)
            if previous is None:
                changes.append(FileChange(entry.path, "added"))
                continue
            old_text = _text(self.objects.get(previous.hash))
            new_text = _text(self.objects.get(entry.hash))
            status = "unchanged" if previous.hash == entry.hash else "modified"
            changes.append(
                FileChange(entry.path, status, tuple(diff_lines(old_text, new_text)))
            )
        return CommitDiff(digest=digest, record=record, initial=False, files=tuple(changes))


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")
