"""Commit type -> release significance rules.

The table is part of the contract with contributors' commit-message
convention. It is loaded once per run (defaults below, or `[[release.rules]]`
in `shipline.toml`) and never mutated.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from shipline.pipeline.model import CommitRecord
from shipline.pipeline.semver import BumpLevel


@dataclass(frozen=True, slots=True)
class ReleaseRule:
    type: str
    # None matches any scope (including no scope).
    scope: str | None
    # BumpLevel.NONE means "never release for this commit", overriding other matches.
    release: BumpLevel

    def matches(self, commit: CommitRecord) -> bool:
        if commit.type != self.type:
            return False
        if self.scope is None:
            return True
        return commit.scope == self.scope


DEFAULT_RELEASE_RULES: tuple[ReleaseRule, ...] = (
    ReleaseRule(type="feat", scope=None, release=BumpLevel.MINOR),
    ReleaseRule(type="fix", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="perf", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="refactor", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="docs", scope="README", release=BumpLevel.PATCH),
    ReleaseRule(type="test", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="style", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="ci", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="build", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="chore", scope=None, release=BumpLevel.PATCH),
    ReleaseRule(type="chore", scope="deps", release=BumpLevel.NONE),
    ReleaseRule(type="no-release", scope=None, release=BumpLevel.NONE),
)


def classify(commit: CommitRecord, rules: Sequence[ReleaseRule]) -> BumpLevel:
    """Release significance of a single commit.

    A matching no-release rule wins over everything, including a breaking
    marker. Otherwise a breaking change is major, and the highest matching
    rule decides. Commits matching no rule contribute nothing.
    """
    if commit.type is None:
        return BumpLevel.NONE

    matched = [rule for rule in rules if rule.matches(commit)]
    if any(rule.release is BumpLevel.NONE for rule in matched):
        return BumpLevel.NONE
    if commit.breaking:
        return BumpLevel.MAJOR
    return max((rule.release for rule in matched), default=BumpLevel.NONE)
