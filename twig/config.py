"""Repository settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Literal, Mapping

Storage = Literal["files", "diskcache", "memory"]

STORAGE_CHOICES: tuple[str, ...] = ("files", "diskcache", "memory")


@dataclass(frozen=True)
class Settings:
    """Names and defaults a repository is opened with.

    Attributes:
        repo_dir: Repository directory inside the working-tree root.
        ignore_file: Ignore-pattern file inside the working-tree root.
        default_branch: Branch HEAD points at after ``init``.
        default_remote: Remote used by push/pull when none is given.
        storage: ``"files"`` (one file per object/ref), ``"diskcache"``
            (a single diskcache directory) or ``"memory"``.
    """

    repo_dir: str = ".twig"
    ignore_file: str = ".twigignore"
    default_branch: str = "main"
    default_remote: str = "origin"
    storage: Storage = "files"

    def __post_init__(self) -> None:
        if self.storage not in STORAGE_CHOICES:
            raise ValueError(f"Unknown storage: {self.storage!r}")
        if not self.repo_dir or "/" in self.repo_dir or os.sep in self.repo_dir:
            raise ValueError(f"Invalid repository directory name: {self.repo_dir!r}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> Settings:
        """Defaults overridden by ``TWIG_*`` environment variables, then kwargs."""
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for field_name, var in (
            ("repo_dir", "TWIG_DIR"),
            ("default_branch", "TWIG_DEFAULT_BRANCH"),
            ("default_remote", "TWIG_DEFAULT_REMOTE"),
            ("storage", "TWIG_STORAGE"),
        ):
            if env.get(var):
                values[field_name] = env[var]
        settings = cls(**values)  # type: ignore[arg-type]
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(settings, **overrides) if overrides else settings
