"""Propagate command - update downstream repositories for a published release."""

from __future__ import annotations

import typer

from shipline.cli.commands._helpers import exit_on_error, exit_with_code
from shipline.cli.context import build_context
from shipline.core.errors import ErrorCode


def propagate(
    tag: str = typer.Option(..., "--tag", help="Published release tag, e.g. v1.4.8"),
    target: list[str] | None = typer.Option(
        None,
        "--target",
        help="Downstream target id (repeatable; default: all)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print commit and push commands only"),
) -> None:
    """Push the release's version and hashes into the downstream repositories."""
    ctx = build_context()
    service = ctx.service()

    if target:
        known = {t.id for t in ctx.config.downstream}
        unknown = [t for t in target if t not in known]
        if unknown:
            ctx.console.error(f"unknown downstream target: {', '.join(unknown)}")
            ctx.console.print(f"available: {', '.join(sorted(known))}")
            exit_with_code(int(ErrorCode.USER_ERROR))

    published = service.published_release(tag)
    exit_on_error(published, ctx)

    outcomes = service.propagate(published.unwrap(), dry_run=dry_run, only=target)
    failed = [o for o in outcomes if not o.ok]
    if failed:
        ctx.console.error(f"propagation failed for: {', '.join(o.target.id for o in failed)}")
        exit_with_code(int(ErrorCode.PROPAGATION_ERROR))
    ctx.console.success(f"downstream repositories at {tag}")
