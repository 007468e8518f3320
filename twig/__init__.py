"""twig: a small content-addressed version-control engine."""

from .config import Settings
from .diff import DiffLine, diff_lines
from .errors import (
    AlreadyExists,
    BranchHasNoCommits,
    CorruptHistory,
    CorruptObject,
    InvalidOperation,
    MergeConflict,
    NotARepository,
    NotFound,
    NothingToCommit,
    TwigError,
)
from .history import CommitDiff, FileChange, GraphLine, History, LogEntry
from .index import StagingIndex
from .kv.base import KVStore
from .merge import MergeResult, detect_conflicts, merge_files
from .objects import ObjectStore, hash_bytes
from .records import CommitRecord, StagingEntry
from .refs import DETACHED_HEAD, BranchInfo, Refs
from .remote import PullResult, PushResult, Remote
from .repository import AddResult, Repository, find_root, repository
from .worktree import Status, WorkTree

__all__ = [
    "AddResult",
    "AlreadyExists",
    "BranchHasNoCommits",
    "BranchInfo",
    "CommitDiff",
    "CommitRecord",
    "CorruptHistory",
    "CorruptObject",
    "DETACHED_HEAD",
    "DiffLine",
    "FileChange",
    "GraphLine",
    "History",
    "InvalidOperation",
    "KVStore",
    "LogEntry",
    "MergeConflict",
    "MergeResult",
    "NotARepository",
    "NotFound",
    "NothingToCommit",
    "ObjectStore",
    "PullResult",
    "PushResult",
    "Refs",
    "Remote",
    "Repository",
    "Settings",
    "StagingEntry",
    "StagingIndex",
    "Status",
    "TwigError",
    "WorkTree",
    "detect_conflicts",
    "diff_lines",
    "find_root",
    "hash_bytes",
    "merge_files",
    "repository",
]
