"""Run command - the whole pipeline for one triggering event."""

from __future__ import annotations

import typer

from shipline.cli.commands._helpers import exit_for_report, exit_on_error, print_report
from shipline.cli.context import build_context
from shipline.pipeline.stages import event_from_env


def run(
    event: str | None = typer.Option(
        None,
        "--event",
        help="Triggering event: push or pull_request (default: $GITHUB_EVENT_NAME)",
        show_default=False,
    ),
    ref: str | None = typer.Option(
        None,
        "--ref",
        help="Git ref of the event, e.g. refs/heads/main (default: $GITHUB_REF)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate and build, but print release and push commands only"
    ),
) -> None:
    """Validate, then build, version, publish and propagate on pushes to main."""
    ctx = build_context()

    event_result = event_from_env(name=event, ref=ref)
    exit_on_error(event_result, ctx)

    report = ctx.service().run(event_result.unwrap(), dry_run=dry_run)
    print_report(report, ctx)
    exit_for_report(report, ctx)
