from __future__ import annotations

from pathlib import Path

import pytest

from shipline.core.result import Ok
from shipline.pipeline.commits import parse_commit
from shipline.pipeline.model import VersionDecision
from shipline.pipeline.notes import render_notes, write_release_notes
from shipline.pipeline.semver import BumpLevel, SemVer


def _decision(*messages: str, previous: SemVer | None = SemVer(1, 4, 7)) -> VersionDecision:
    commits = tuple(parse_commit(f"{i:x}" * 40, m) for i, m in enumerate(messages, start=10))
    return VersionDecision(
        should_release=True,
        bump_level=BumpLevel.MINOR,
        previous_version=previous,
        next_version=SemVer(1, 5, 0),
        commits=commits,
    )


def test_header_links_compare_view() -> None:
    notes = render_notes(_decision("feat: a"), repo="me/tool")
    assert notes.splitlines()[0] == (
        "## [1.5.0](https://github.com/me/tool/compare/v1.4.7...v1.5.0)"
    )


def test_first_release_header_has_no_link() -> None:
    notes = render_notes(_decision("feat: a", previous=None), repo="me/tool")
    assert notes.splitlines()[0] == "## 1.5.0"


def test_sections_in_fixed_order() -> None:
    notes = render_notes(
        _decision("chore: tidy", "fix(cli): crash", "feat: export", "test: more"),
        repo="me/tool",
    )

    headings = [ln for ln in notes.splitlines() if ln.startswith("### ")]
    assert headings == [
        "### :sparkles: Features",
        "### :bug: Fixes",
        "### :white_check_mark: Tests",
        "### :repeat: Chore",
    ]
    sha = "b" * 40
    assert f"* **cli:** crash ([bbbbbbb](https://github.com/me/tool/commit/{sha}))" in notes


def test_ci_is_hidden() -> None:
    notes = render_notes(_decision("ci: cache", "fix: bug"), repo="me/tool")
    assert "cache" not in notes
    assert ":repeat: CI" not in notes


def test_breaking_section() -> None:
    notes = render_notes(_decision("feat!: new format"), repo="me/tool")
    assert "### :warning: Breaking Changes" in notes
    assert notes.count("new format") == 2


def test_requires_release_decision() -> None:
    decision = VersionDecision(
        should_release=False,
        bump_level=BumpLevel.NONE,
        previous_version=None,
        next_version=None,
    )
    with pytest.raises(ValueError):
        render_notes(decision, repo="me/tool")


def test_write_release_notes(tmp_path: Path) -> None:
    path = tmp_path / "notes" / "v1.5.0.md"
    assert write_release_notes(path, "## 1.5.0\n") == Ok(path)
    assert path.read_text(encoding="utf-8") == "## 1.5.0\n"
