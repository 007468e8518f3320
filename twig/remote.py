"""Simulated remotes: branch mirrors kept under ``refs/remotes``.

A remote here is only a set of ref files inside the same repository.
Objects are shared, so push and pull only move pointers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from .refs import Refs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PushResult:
    remote: str
    branch: str
    commit: str | None


@dataclass(frozen=True)
class PullResult:
    remote: str
    branch: str
    commit: str | None
    status: Literal["up_to_date", "updated", "empty"]

    @property
    def updated(self) -> bool:
        return self.status == "updated"


class Remote:
    """A named remote mirror of branch refs."""

    def __init__(self, refs: Refs, name: str) -> None:
        self.refs = refs
        self.name = name

    def push(self, branch: str, commit: str | None) -> PushResult:
        """Point the mirror of branch at commit (None leaves it empty)."""
        self.refs.set_remote_head(self.name, branch, commit)
        logger.info("pushed %s to %s at %s", branch, self.name, commit or "<empty>")
        return PushResult(self.name, branch, commit)

    def head(self, branch: str) -> str | None:
        """Commit the mirror points at. NotFound if never pushed."""
        return self.refs.remote_head(self.name, branch)
