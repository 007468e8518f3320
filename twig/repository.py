"""Repository: the state handle every operation runs against."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Iterator

from .config import Settings
from .errors import (
    BranchHasNoCommits,
    InvalidOperation,
    MergeConflict,
    NotARepository,
    NotFound,
)
from .history import Clock, CommitDiff, GraphLine, History, LogEntry, utc_timestamp
from .index import INDEX_KEY, StagingIndex
from .kv.base import KVStore
from .merge import MergeResult, detect_conflicts, merge_files
from .objects import ObjectStore
from .records import StagingEntry, encode_index
from .refs import BRANCH_HEAD, DETACHED_HEAD, HEAD_KEY, BranchInfo, Refs, validate_ref_name
from .remote import PullResult, PushResult, Remote
from .worktree import Status, WorkTree, is_ignored

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddResult:
    staged: tuple[StagingEntry, ...]
    ignored: tuple[str, ...]


class Repository:
    """A working tree plus the versioned state stored for it.

    Each operation reads what it needs from the KV backend, applies
    its change and writes the result back before returning; nothing
    is cached between operations. Validation happens before the first
    write, so a failing operation leaves persisted state untouched.

    Args:
        root: Working-tree root directory.
        store: Backend holding objects, refs, HEAD and the index.
        settings: Directory and default names.
        clock: Timestamp source for new commits.
    """

    def __init__(
        self,
        root: str,
        store: KVStore,
        *,
        settings: Settings | None = None,
        clock: Clock = utc_timestamp,
    ) -> None:
        self.settings = settings or Settings()
        self.root = os.path.abspath(root)
        self.store = store
        self.objects = ObjectStore(store)
        self.refs = Refs(store)
        self.history = History(self.objects, self.refs, clock=clock)
        self.worktree = WorkTree(
            self.root,
            repo_dir=self.settings.repo_dir,
            ignore_file=self.settings.ignore_file,
        )

    # -- Setup --

    def initialize(self) -> bool:
        """Write HEAD, an empty default branch and an empty index if missing.

        Returns True if anything was written.
        """
        branch = validate_ref_name(self.settings.default_branch)
        created = [
            self.store.add(HEAD_KEY, f"ref: {BRANCH_HEAD % branch}".encode()),
            self.store.add(BRANCH_HEAD % branch, b""),
            self.store.add(INDEX_KEY, encode_index([])),
        ]
        if created[0]:
            logger.info("initialized repository at %s", self.root)
        return any(created)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> Repository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load_index(self) -> StagingIndex:
        return StagingIndex(self.store)

    # -- Staging --

    def add(self, path: str) -> AddResult:
        """Stage a file, or every non-ignored file below a directory.

        Raises NotFound if path does not exist.
        """
        rel_path = self.worktree.relative(path)
        absolute = self.worktree.absolute(rel_path) if rel_path else self.root
        if not os.path.exists(absolute):
            raise NotFound(f"No such file or directory: {path}")

        patterns = self.worktree.ignore_patterns()
        if rel_path and is_ignored(rel_path, patterns):
            logger.info("ignored %s", rel_path)
            return AddResult(staged=(), ignored=(rel_path,))

        index = self.load_index()
        staged: list[StagingEntry] = []
        for file_path in self.worktree.iter_files(rel_path, patterns):
            digest = self.objects.put(self.worktree.read(file_path))
            index.stage(file_path, digest)
            staged.append(StagingEntry(file_path, digest))
        index.save()
        logger.info("staged %d files", len(staged))
        return AddResult(staged=tuple(staged), ignored=())

    # -- Commits --

    def commit(self, message: str) -> str:
        index = self.load_index()
        digest = self.history.commit(index, message)
        index.save()
        return digest

    def log(self) -> Iterator[LogEntry]:
        return self.history.log()

    def graph(self) -> list[GraphLine]:
        return self.history.graph()

    def show(self, ref: str) -> CommitDiff:
        return self.history.show(ref)

    def head_files(self) -> tuple[StagingEntry, ...]:
        """Files of the latest commit on the current branch."""
        head = self.refs.current_head()
        if head is None:
            return ()
        return self.objects.get_commit(head).files

    # -- Working tree --

    def status(self) -> Status:
        index = self.load_index()
        committed = {entry.path: entry.hash for entry in self.head_files()}
        return self.worktree.status(
            index.paths(),
            committed,
            branch=self.refs.current_branch(),
            head=self.refs.current_head(),
        )

    def restore(self, commit: str) -> None:
        """Write a commit's files onto the working tree."""
        record = self.objects.get_commit(commit)
        self.worktree.restore(self.objects, record.files)

    # -- Branches --

    def current_branch(self) -> str:
        return self.refs.current_branch()

    def create_branch(self, name: str) -> str | None:
        return self.refs.create_branch(name)

    def delete_branch(self, name: str) -> None:
        self.refs.delete_branch(name)

    def list_branches(self) -> list[BranchInfo]:
        return self.refs.list_branches()

    def checkout(self, name: str) -> str | None:
        """Switch HEAD to a branch and restore its latest commit.

        Returns the branch's commit, or None for a branch with no
        commits (nothing is restored then).

        Raises NotFound if the branch does not exist.
        """
        head = self.refs.branch_head(name)
        files: tuple[StagingEntry, ...] = ()
        if head is not None:
            files = self.objects.get_commit(head).files
            self._require_objects(files)
            self.worktree.check_writable(entry.path for entry in files)
        self.refs.set_head_branch(name)
        if files:
            self.worktree.restore(self.objects, files)
        logger.info("switched to %s", name)
        return head

    # -- Merge --

    def merge(self, branch: str) -> MergeResult:
        """Stage the union of the current and incoming file sets.

        The merge is not committed; a following ``commit()`` finalizes
        it with the pre-merge HEAD as its only parent.

        Raises:
            InvalidOperation: If branch is the current branch.
            NotFound: If branch does not exist.
            BranchHasNoCommits: If branch has no commits.
            MergeConflict: If any path differs on both sides; nothing
                is changed.
        """
        current = self.refs.current_branch()
        if branch == current:
            raise InvalidOperation(f"Cannot merge branch {branch} into itself")
        incoming_head = self.refs.branch_head(branch)
        if incoming_head is None:
            raise BranchHasNoCommits(f"Branch has no commits: {branch}")

        current_head = self.refs.current_head()
        base = self.head_files()
        incoming = self.objects.get_commit(incoming_head).files

        conflicts = detect_conflicts(base, incoming)
        if conflicts:
            logger.info("merge of %s aborted: %d conflicts", branch, len(conflicts))
            raise MergeConflict(conflicts)

        if incoming_head == current_head:
            return MergeResult(
                merged=False,
                source=branch,
                target=current,
                strategy="up_to_date",
                files=base,
                added_paths=(),
            )

        merged = merge_files(base, incoming)
        base_paths = {entry.path for entry in base}
        added = tuple(e.path for e in merged if e.path not in base_paths)
        self._require_objects(merged)
        self.worktree.check_writable(entry.path for entry in merged)

        index = self.load_index()
        index.stage_all(merged)
        self.worktree.restore(self.objects, merged)
        index.save()
        logger.info("merged %s into %s (%d new paths)", branch, current, len(added))
        return MergeResult(
            merged=True,
            source=branch,
            target=current,
            strategy="additive",
            files=merged,
            added_paths=added,
        )

    # -- Remotes --

    def push(self, remote: str | None = None, branch: str | None = None) -> PushResult:
        """Mirror a branch's commit into ``refs/remotes/<remote>/<branch>``."""
        remote = remote or self.settings.default_remote
        branch = branch or self._attached_branch()
        commit = self.refs.branch_head(branch)
        return Remote(self.refs, remote).push(branch, commit)

    def pull(self, remote: str | None = None, branch: str | None = None) -> PullResult:
        """Move a local branch to its remote mirror's commit.

        When the pulled branch is checked out, its files are restored.

        Raises NotFound if the remote branch was never pushed.
        """
        remote = remote or self.settings.default_remote
        branch = branch or self._attached_branch()
        incoming = Remote(self.refs, remote).head(branch)
        if incoming is None:
            return PullResult(remote, branch, None, "empty")

        local = self.refs.branch_head(branch) if self.refs.branch_exists(branch) else None
        if incoming == local:
            return PullResult(remote, branch, incoming, "up_to_date")

        files = self.objects.get_commit(incoming).files
        self._require_objects(files)
        checked_out = branch == self.refs.current_branch()
        if checked_out:
            self.worktree.check_writable(entry.path for entry in files)
        self.refs.set_branch_head(branch, incoming)
        if checked_out:
            self.worktree.restore(self.objects, files)
        logger.info("pulled %s from %s at %s", branch, remote, incoming[:7])
        return PullResult(remote, branch, incoming, "updated")

    # -- Internal --

    def _attached_branch(self) -> str:
        branch = self.refs.current_branch()
        if branch == DETACHED_HEAD:
            raise InvalidOperation("HEAD is detached; name a branch explicitly")
        return branch

    def _require_objects(self, files: tuple[StagingEntry, ...]) -> None:
        missing = [entry.path for entry in files if not self.objects.contains(entry.hash)]
        if missing:
            raise NotFound(f"Missing objects for: {', '.join(missing)}")


def find_root(start: str = ".", settings: Settings | None = None) -> str:
    """Walk up from start to the directory holding the repository directory."""
    settings = settings or Settings()
    path = os.path.abspath(start)
    while True:
        if os.path.isdir(os.path.join(path, settings.repo_dir)):
            return path
        parent = os.path.dirname(path)
        if parent == path:
            raise NotARepository(f"Not a twig repository (or any parent): {start}")
        path = parent


def repository(
    root: str = ".",
    *,
    settings: Settings | None = None,
    create: bool = False,
    search_parents: bool = True,
    clock: Clock = utc_timestamp,
) -> Repository:
    """Open (or with ``create=True``, initialize) a repository.

    Args:
        root: Working-tree root, or any directory below it when
            ``search_parents`` is set.
        settings: Directory names and storage backend
            (default ``Settings()``).
        create: Initialize the repository if missing.
        search_parents: Look for the repository directory in parent
            directories of root.
        clock: Timestamp source for new commits.

    Returns:
        A ``Repository`` handle.
    """
    settings = settings or Settings()
    if not create and search_parents and settings.storage != "memory":
        root = find_root(root, settings)
    repo_path = os.path.join(os.path.abspath(root), settings.repo_dir)

    # Build backend
    if settings.storage == "memory":
        from .kv.memory import Memory

        backend: KVStore = Memory()
    elif settings.storage == "files":
        from .kv.files import Files

        backend = Files(repo_path, create=create)
    elif settings.storage == "diskcache":
        if not create and not os.path.isdir(repo_path):
            raise NotARepository(f"Not a twig repository: {repo_path}")
        from .kv.disk import Disk

        backend = Disk(repo_path)
    else:
        raise ValueError(f"Unknown storage: {settings.storage!r}")

    repo = Repository(root, backend, settings=settings, clock=clock)
    if create or settings.storage == "memory":
        repo.initialize()
    elif HEAD_KEY not in backend:
        backend.close()
        raise NotARepository(f"Not a twig repository: {repo_path}")
    return repo
