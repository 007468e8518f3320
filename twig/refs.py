"""HEAD and branch refs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .errors import AlreadyExists, InvalidOperation, NotFound
from .kv.base import KVStore

logger = logging.getLogger(__name__)

HEAD_KEY = "HEAD"
BRANCH_HEAD = "refs/heads/%s"
BRANCH_PREFIX = "refs/heads/"
REMOTE_HEAD = "refs/remotes/%s/%s"
SYMBOLIC_PREFIX = "ref: "

DETACHED_HEAD = "detached HEAD"

_INVALID_NAME = re.compile(r"(^[-/.])|(/\.)|(\.\.)|(//)|([\s~^:?*\[\\])|(/$)|(\.lock$)")


@dataclass(frozen=True)
class BranchInfo:
    """A branch, the commit it points at and whether it is checked out."""

    name: str
    commit: str | None
    current: bool


def validate_ref_name(name: str) -> str:
    """Raise InvalidOperation unless name is usable as a ref path."""
    if not name or _INVALID_NAME.search(name):
        raise InvalidOperation(f"Invalid ref name: {name!r}")
    return name


class Refs:
    """Resolves HEAD -> branch -> commit and manages branch refs.

    An empty ref file means the branch exists but has no commits.
    """

    def __init__(self, store: KVStore) -> None:
        self.store = store

    # -- HEAD --

    def read_head(self) -> str:
        raw = self.store.get(HEAD_KEY)
        if raw is None:
            raise NotFound("HEAD is missing")
        return raw.decode("utf-8").strip()

    def is_detached(self) -> bool:
        return not self.read_head().startswith(SYMBOLIC_PREFIX)

    def current_branch(self) -> str:
        """Name of the checked-out branch, or DETACHED_HEAD."""
        head = self.read_head()
        if head.startswith(SYMBOLIC_PREFIX):
            ref = head[len(SYMBOLIC_PREFIX):].strip()
            if ref.startswith(BRANCH_PREFIX):
                return ref[len(BRANCH_PREFIX):]
            return ref.rsplit("/", 1)[-1]
        return DETACHED_HEAD

    def current_head(self) -> str | None:
        """Commit digest HEAD resolves to, or None before the first commit."""
        head = self.read_head()
        if head.startswith(SYMBOLIC_PREFIX):
            ref = head[len(SYMBOLIC_PREFIX):].strip()
            return _digest_or_none(self.store.get(ref))
        return head or None

    def set_head_branch(self, name: str) -> None:
        self.store.set(HEAD_KEY, f"{SYMBOLIC_PREFIX}{BRANCH_HEAD % name}".encode())
        logger.debug("HEAD -> %s", name)

    def detach(self, digest: str) -> None:
        self.store.set(HEAD_KEY, digest.encode())
        logger.debug("HEAD detached at %s", digest)

    def advance(self, digest: str) -> None:
        """Move whatever HEAD points at (branch or detached) to digest."""
        if self.is_detached():
            self.detach(digest)
        else:
            self.set_branch_head(self.current_branch(), digest)

    # -- Branches --

    def branch_exists(self, name: str) -> bool:
        return (BRANCH_HEAD % validate_ref_name(name)) in self.store

    def branch_head(self, name: str) -> str | None:
        """Commit a branch points at; None if it has none. NotFound if missing."""
        raw = self.store.get(BRANCH_HEAD % validate_ref_name(name))
        if raw is None:
            raise NotFound(f"Branch not found: {name}")
        return _digest_or_none(raw)

    def set_branch_head(self, name: str, digest: str | None) -> None:
        self.store.set(
            BRANCH_HEAD % validate_ref_name(name), (digest or "").encode()
        )
        logger.debug("branch %s -> %s", name, digest or "<empty>")

    def create_branch(self, name: str) -> str | None:
        """Create a branch at the current HEAD commit.

        Returns the commit the new branch points at (None for an
        empty-history branch).

        Raises AlreadyExists if the branch exists.
        """
        key = BRANCH_HEAD % validate_ref_name(name)
        head = self.current_head()
        if not self.store.add(key, (head or "").encode()):
            raise AlreadyExists(f"Branch already exists: {name}")
        logger.info("created branch %s at %s", name, head or "<empty>")
        return head

    def delete_branch(self, name: str) -> None:
        """Delete a branch ref.

        Raises:
            InvalidOperation: If name is the checked-out branch.
            NotFound: If no such branch exists.
        """
        if name == self.current_branch():
            raise InvalidOperation(f"Cannot delete the current branch: {name}")
        if not self.store.remove(BRANCH_HEAD % validate_ref_name(name)):
            raise NotFound(f"Branch not found: {name}")
        logger.info("deleted branch %s", name)

    def branches(self) -> list[str]:
        """All branch names, sorted."""
        return [key[len(BRANCH_PREFIX):] for key in self.store.keys(BRANCH_PREFIX)]

    def list_branches(self) -> list[BranchInfo]:
        current = self.current_branch()
        return [
            BranchInfo(
                name=name,
                commit=_digest_or_none(self.store.get(BRANCH_HEAD % name)),
                current=name == current,
            )
            for name in self.branches()
        ]

    # -- Remote mirrors --

    def remote_head(self, remote: str, branch: str) -> str | None:
        """Commit a remote branch mirror points at. NotFound if missing."""
        raw = self.store.get(REMOTE_HEAD % (validate_ref_name(remote), validate_ref_name(branch)))
        if raw is None:
            raise NotFound(f"No remote branch: {remote}/{branch}")
        return _digest_or_none(raw)

    def set_remote_head(self, remote: str, branch: str, digest: str | None) -> None:
        self.store.set(
            REMOTE_HEAD % (validate_ref_name(remote), validate_ref_name(branch)),
            (digest or "").encode(),
        )
        logger.debug("remote %s/%s -> %s", remote, branch, digest or "<empty>")


def _digest_or_none(raw: bytes | None) -> str | None:
    if raw is None:
        return None
    value = raw.decode("utf-8").strip()
    return value or None
