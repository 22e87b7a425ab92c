"""Plan command - show the version decision without publishing."""

from __future__ import annotations

import json
import os
from pathlib import Path

import typer

from shipline.cli.commands._helpers import exit_on_error
from shipline.cli.context import build_context
from shipline.core.errors import ErrorCode
from shipline.pipeline.model import VersionDecision


def decision_payload(decision: VersionDecision) -> dict[str, object]:
    return {
        "should_release": decision.should_release,
        "bump": str(decision.bump_level),
        "previous_version": None if decision.previous_version is None else str(decision.previous_version),
        "next_version": None if decision.next_version is None else str(decision.next_version),
        "tag": decision.tag,
        "commits": len(decision.commits),
    }


def _write_github_output(path: Path, decision: VersionDecision) -> None:
    lines = [f"new_release_published={'true' if decision.should_release else 'false'}"]
    if decision.next_version is not None:
        lines.append(f"new_release_version={decision.next_version}")
        lines.append(f"new_release_git_tag={decision.tag}")
    with path.open("a", encoding="utf-8") as fh:
        fh.write("\n".join(lines) + "\n")


def plan(
    json_out: bool = typer.Option(False, "--json", help="Print the decision as JSON"),
    github_output: bool = typer.Option(
        False,
        "--github-output",
        help="Also append the decision to $GITHUB_OUTPUT",
    ),
) -> None:
    """Resolve the next version from commits since the last release tag."""
    ctx = build_context()
    result = ctx.service().plan()
    exit_on_error(result, ctx)
    decision = result.unwrap()

    if github_output:
        target = os.environ.get("GITHUB_OUTPUT")
        if not target:
            ctx.console.error("GITHUB_OUTPUT is not set")
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))
        try:
            _write_github_output(Path(target), decision)
        except OSError as e:
            ctx.console.error(f"cannot write GITHUB_OUTPUT: {e}")
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    if json_out:
        typer.echo(json.dumps(decision_payload(decision), indent=2))
        return

    if not decision.should_release:
        ctx.console.success("no release warranted")
        return
    previous = "none" if decision.previous_version is None else str(decision.previous_version)
    ctx.console.success(f"{decision.bump_level}: {previous} -> {decision.next_version} ({decision.tag})")
