"""Version Resolver.

`decide_version` is a pure function of (previous version, commits, rule
table): the same commit range and prior version always give the same
decision. `resolve_version` only adds the git reads around it.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.output.console import ConsoleProtocol, Style
from shipline.pipeline.commits import previous_release, read_commits
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import CommitRecord, VersionDecision
from shipline.pipeline.rules import ReleaseRule, classify
from shipline.pipeline.semver import INITIAL_RELEASE, BumpLevel, SemVer


def bump_level_for(commits: Sequence[CommitRecord], rules: Sequence[ReleaseRule]) -> BumpLevel:
    return max((classify(c, rules) for c in commits), default=BumpLevel.NONE)


def decide_version(
    previous: SemVer | None,
    commits: Sequence[CommitRecord],
    rules: Sequence[ReleaseRule],
) -> VersionDecision:
    level = bump_level_for(commits, rules)
    if level is BumpLevel.NONE:
        return VersionDecision(
            should_release=False,
            bump_level=level,
            previous_version=previous,
            next_version=None,
            commits=tuple(commits),
        )

    next_version = INITIAL_RELEASE if previous is None else previous.bump(level)
    return VersionDecision(
        should_release=True,
        bump_level=level,
        previous_version=previous,
        next_version=next_version,
        commits=tuple(commits),
    )


def resolve_version(
    *,
    project_root: Path,
    rules: Sequence[ReleaseRule],
    console: ConsoleProtocol,
) -> Result[VersionDecision, PipelineError]:
    prev = previous_release(project_root=project_root)
    if isinstance(prev, Err):
        return prev

    since_tag: str | None = None
    previous: SemVer | None = None
    if prev.value is not None:
        since_tag, previous = prev.value
        console.print(f"last release: {since_tag}", Style.DIM)
    else:
        console.print("no previous release tag", Style.DIM)

    commits = read_commits(project_root=project_root, since_tag=since_tag)
    if isinstance(commits, Err):
        return commits

    for commit in commits.value:
        level = classify(commit, rules)
        console.print(f"{commit.short_sha} [{level}] {commit.subject}", Style.DIM)

    return Ok(decide_version(previous, commits.value, rules))
