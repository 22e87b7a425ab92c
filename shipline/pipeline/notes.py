from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import CommitRecord, VersionDecision


@dataclass(frozen=True, slots=True)
class NotesSection:
    type: str
    title: str
    hidden: bool = False


# Section order is the rendering order. Hidden types still count for versioning.
NOTES_SECTIONS: tuple[NotesSection, ...] = (
    NotesSection("feat", ":sparkles: Features"),
    NotesSection("fix", ":bug: Fixes"),
    NotesSection("docs", ":memo: Documentation"),
    NotesSection("style", ":barber: Code-style"),
    NotesSection("refactor", ":zap: Refactor"),
    NotesSection("perf", ":fast_forward: Performance"),
    NotesSection("test", ":white_check_mark: Tests"),
    NotesSection("ci", ":repeat: CI", hidden=True),
    NotesSection("chore", ":repeat: Chore"),
)


def _commit_url(repo: str, sha: str) -> str:
    return f"https://github.com/{repo}/commit/{sha}"


def _entry(commit: CommitRecord, repo: str) -> str:
    scope = f"**{commit.scope}:** " if commit.scope else ""
    return f"* {scope}{commit.subject} ([{commit.short_sha}]({_commit_url(repo, commit.sha)}))"


def render_notes(
    decision: VersionDecision,
    *,
    repo: str,
    sections: Sequence[NotesSection] = NOTES_SECTIONS,
) -> str:
    """Markdown release notes grouped by commit type, in commit order within a group."""
    if decision.next_version is None:
        raise ValueError("release notes require a release decision")

    tag = decision.next_version.to_tag()
    lines: list[str] = []
    if decision.previous_version is not None:
        prev_tag = decision.previous_version.to_tag()
        compare = f"https://github.com/{repo}/compare/{prev_tag}...{tag}"
        lines.append(f"## [{decision.next_version}]({compare})")
    else:
        lines.append(f"## {decision.next_version}")

    breaking = [c for c in decision.commits if c.breaking and c.type is not None]
    if breaking:
        lines.append("")
        lines.append("### :warning: Breaking Changes")
        lines.append("")
        lines.extend(_entry(c, repo) for c in breaking)

    for section in sections:
        if section.hidden:
            continue
        entries = [c for c in decision.commits if c.type == section.type]
        if not entries:
            continue
        lines.append("")
        lines.append(f"### {section.title}")
        lines.append("")
        lines.extend(_entry(c, repo) for c in entries)

    return "\n".join(lines).rstrip() + "\n"


def write_release_notes(path: Path, text: str) -> Result[Path, PipelineError]:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        return Err(
            PipelineError(
                kind="publish_failed",
                message=f"failed to write release notes: {e}",
                hint=str(path),
            )
        )
    return Ok(path)
