"""Build command - run matrix cells."""

from __future__ import annotations

import typer

from shipline.cli.commands._helpers import exit_on_error
from shipline.cli.context import build_context
from shipline.core.errors import ErrorCode
from shipline.pipeline.matrix import find_cell
from shipline.pipeline.model import TargetDescriptor


def build(
    cell: list[str] | None = typer.Option(
        None,
        "--cell",
        help="Matrix cell to build, e.g. linux-x86_64 (repeatable; default: all cells)",
        show_default=False,
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without building"),
) -> None:
    """Build release binaries for the matrix cells."""
    ctx = build_context()

    cells: list[TargetDescriptor] | None = None
    if cell:
        cells = []
        for platform_id in cell:
            found = find_cell(ctx.config.matrix, platform_id)
            if found is None:
                ctx.console.error(f"unknown cell: {platform_id}")
                known = ", ".join(c.platform_id for c in ctx.config.matrix)
                ctx.console.print(f"available: {known}")
                raise typer.Exit(code=int(ErrorCode.USER_ERROR))
            cells.append(found)

    result = ctx.service().build(cells, dry_run=dry_run)
    exit_on_error(result, ctx)
    for outcome in result.unwrap():
        ctx.console.success(f"{outcome.cell.platform_id}: {outcome.artifact}")
