"""Release command - the part of the chain that runs after the matrix jobs."""

from __future__ import annotations

import typer

from shipline.cli.commands._helpers import exit_for_report, print_report
from shipline.cli.context import build_context


def release(
    dry_run: bool = typer.Option(False, "--dry-run", help="Print publish and push commands only"),
) -> None:
    """Aggregate downloaded artifacts, resolve the version, publish and propagate."""
    ctx = build_context()
    report = ctx.service().release(dry_run=dry_run)
    print_report(report, ctx)
    exit_for_report(report, ctx)
