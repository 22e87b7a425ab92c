"""Project root detection and paths.

The project root is the checkout of the binary project being released.

It is identified by a `shipline.toml` file, or failing that by a `.git`
entry (directory or worktree file).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result

__all__ = [
    "CONFIG_FILE_NAME",
    "Project",
    "ProjectError",
    "detect_project",
    "find_project_upward",
    "is_project_root",
]

CONFIG_FILE_NAME = "shipline.toml"


@dataclass(frozen=True)
class ProjectError:
    """Error when the project root cannot be detected."""

    message: str
    searched_from: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class Project:
    """A detected project checkout.

    The root contains:
    - shipline.toml (optional)
    - the build manifest (e.g. Cargo.toml)
    - .shipline/ generated artifacts (gitignored)
    """

    root: Path

    @property
    def config_path(self) -> Path:
        return self.root / CONFIG_FILE_NAME

    @property
    def state_dir(self) -> Path:
        """Path to generated pipeline state (.shipline/)."""
        return self.root / ".shipline"

    @property
    def work_dir(self) -> Path:
        """Per-cell isolated build directories."""
        return self.state_dir / "work"

    def __str__(self) -> str:
        return str(self.root)


def is_project_root(path: Path) -> bool:
    return (path / CONFIG_FILE_NAME).is_file() or (path / ".git").exists()


def find_project_upward(start: Path) -> Path | None:
    """Search upward from start for a project root.

    A `shipline.toml` anywhere on the way up wins over a nearer `.git`, so a
    config placed at the top of a monorepo is honoured from subdirectories.
    """
    candidates = (start, *start.parents)
    for parent in candidates:
        if (parent / CONFIG_FILE_NAME).is_file():
            return parent
    for parent in candidates:
        if (parent / ".git").exists():
            return parent
    return None


def detect_project(
    *,
    start_dir: Path | None = None,
    env_var: str = "SHIPLINE_ROOT",
) -> Result[Project, ProjectError]:
    """Detect the project root directory.

    Detection order:
    1. SHIPLINE_ROOT environment variable (if set and a directory)
    2. Search upward from start_dir (or cwd)
    """
    env_value = os.environ.get(env_var)
    if env_value:
        root = Path(env_value).expanduser().resolve()
        if root.is_dir():
            return Ok(Project(root=root))
        return Err(
            ProjectError(
                message=f"{env_var} is not a directory: {root}",
                searched_from=root,
            )
        )

    start = (start_dir or Path.cwd()).resolve()
    found = find_project_upward(start)
    if found is None:
        return Err(
            ProjectError(
                message="not inside a project checkout",
                searched_from=start,
                hint=f"Run from a git checkout or create {CONFIG_FILE_NAME}.",
            )
        )
    return Ok(Project(root=found))
