from __future__ import annotations

import re
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.git.repository import Repository
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import CommitRecord
from shipline.pipeline.semver import SemVer, latest_stable_tag


# type(scope)!: subject
_HEADER_RE = re.compile(
    r"^(?P<type>[A-Za-z][\w-]*)(?:\((?P<scope>[^()\r\n]*)\))?(?P<bang>!)?:[ \t]+(?P<subject>\S.*)$"
)
_BREAKING_FOOTER_RE = re.compile(r"^BREAKING[ -]CHANGE:[ \t]*\S", re.MULTILINE)


def parse_commit(sha: str, message: str) -> CommitRecord:
    """Parse a conventional commit message.

    Messages whose first line is not `type(scope)?!?: subject` are kept with
    `type=None`; they never affect the release decision.
    """
    lines = message.strip().splitlines()
    header = lines[0].strip() if lines else ""
    body = "\n".join(lines[1:])

    m = _HEADER_RE.match(header)
    if m is None:
        return CommitRecord(sha=sha, message=message, type=None, scope=None, subject=header)

    scope = m.group("scope")
    scope = scope.strip() if scope else None
    breaking = m.group("bang") is not None or _BREAKING_FOOTER_RE.search(body) is not None
    return CommitRecord(
        sha=sha,
        message=message,
        type=m.group("type"),
        scope=scope or None,
        subject=m.group("subject").strip(),
        breaking=breaking,
    )


def previous_release(*, project_root: Path) -> Result[tuple[str, SemVer] | None, PipelineError]:
    """Latest stable `vX.Y.Z` tag reachable from HEAD, or None before the first release."""
    tags = Repository(project_root).tags_merged("v*")
    if isinstance(tags, Err):
        return Err(
            PipelineError(
                kind="git_failed",
                message="cannot list release tags",
                hint=tags.error.message,
            )
        )
    return Ok(latest_stable_tag(tags.value))


def read_commits(
    *,
    project_root: Path,
    since_tag: str | None,
) -> Result[list[CommitRecord], PipelineError]:
    """Commits after since_tag up to HEAD, oldest first."""
    log = Repository(project_root).log_since(since_tag)
    if isinstance(log, Err):
        return Err(
            PipelineError(
                kind="git_failed",
                message="cannot read commit history",
                hint=log.error.message + ("" if since_tag is None else f" (since {since_tag})"),
            )
        )
    return Ok([parse_commit(entry.sha, entry.message) for entry in log.value])
