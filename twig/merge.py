"""Path-level merge of two commits' file sets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from .records import StagingEntry


@dataclass(frozen=True)
class MergeResult:
    """Result of a merge operation.

    A merge only stages and materializes the merged files; a separate
    commit finalizes it with a single parent. ``merged`` is False when
    the source was already up to date and nothing was staged.
    """

    merged: bool
    source: str
    target: str
    strategy: Literal["up_to_date", "additive"]
    files: tuple[StagingEntry, ...]
    added_paths: tuple[str, ...]

    def __bool__(self) -> bool:
        return self.merged


def detect_conflicts(
    base: Iterable[StagingEntry], incoming: Iterable[StagingEntry]
) -> set[str]:
    """Paths present on both sides with different digests.

    Paths present on only one side never conflict.
    """
    base_map = {entry.path: entry.hash for entry in base}
    return {
        entry.path
        for entry in incoming
        if entry.path in base_map and base_map[entry.path] != entry.hash
    }


def merge_files(
    base: Iterable[StagingEntry], incoming: Iterable[StagingEntry]
) -> tuple[StagingEntry, ...]:
    """Base entries followed by incoming entries with paths new to base."""
    merged = list(base)
    seen = {entry.path for entry in merged}
    for entry in incoming:
        if entry.path not in seen:
            merged.append(entry)
            seen.add(entry.path)
    return tuple(merged)
