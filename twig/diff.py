"""Line diff used when showing a commit."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from typing import Literal

DiffTag = Literal["equal", "added", "removed"]


@dataclass(frozen=True)
class DiffLine:
    """A run of lines that are unchanged, added or removed."""

    tag: DiffTag
    text: str


def diff_lines(old: str, new: str) -> list[DiffLine]:
    """Diff two texts line by line.

    Consecutive lines sharing a tag are grouped into one ``DiffLine``
    whose text keeps the original line endings. Replacements come out
    as a removal followed by an addition.
    """
    old_lines = old.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)

    parts: list[DiffLine] = []
    for op, i1, i2, j1, j2 in matcher.get_opcodes():
        if op == "equal":
            parts.append(DiffLine("equal", "".join(old_lines[i1:i2])))
            continue
        if op in ("delete", "replace"):
            parts.append(DiffLine("removed", "".join(old_lines[i1:i2])))
        if op in ("insert", "replace"):
            parts.append(DiffLine("added", "".join(new_lines[j1:j2])))
    return parts
