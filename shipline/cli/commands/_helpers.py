"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from shipline.core.errors import ErrorCode
from shipline.core.result import Err, Result
from shipline.output.console import Style
from shipline.output.errors import pipeline_error_exit_code, print_pipeline_error
from shipline.pipeline.errors import PipelineError

if TYPE_CHECKING:
    from shipline.cli.context import CLIContext
    from shipline.pipeline.service import PipelineReport


def exit_on_error[T, E](
    result: Result[T, E],
    ctx: CLIContext,
    error_code: ErrorCode = ErrorCode.USER_ERROR,
) -> None:
    """Exit with error if result is Err, otherwise return.

    Pipeline errors pick their own exit code from their kind; any other error
    object needs a 'message' and optional 'hint' attribute and exits with
    error_code.
    """
    if not isinstance(result, Err):
        return

    error = result.error
    if isinstance(error, PipelineError):
        print_pipeline_error(error, ctx.console)
        raise typer.Exit(code=pipeline_error_exit_code(error))

    message: str = getattr(error, "message", str(error))
    hint: str | None = getattr(error, "hint", None)
    ctx.console.error(message)
    if hint:
        ctx.console.print(f"hint: {hint}", Style.DIM)
    raise typer.Exit(code=int(error_code))


def print_report(report: PipelineReport, ctx: CLIContext) -> None:
    ctx.console.header("summary")
    for stage in report.stages:
        style = {
            "ok": Style.SUCCESS,
            "failed": Style.ERROR,
            "skipped": Style.DIM,
            "noop": Style.INFO,
        }[stage.status]
        ctx.console.print(f"{stage.stage:<10} {stage.status}", style)

    for outcome in report.propagation:
        if outcome.error is not None:
            status = "failed"
        elif outcome.changed:
            status = "updated"
        else:
            status = "up to date"
        ctx.console.print(f"  {outcome.target.id:<8} {status}", Style.DIM)


def exit_for_report(report: PipelineReport, ctx: CLIContext) -> None:
    """Exit with the code of the first failed stage, if any."""
    failures = report.failures
    if not failures:
        return
    error = failures[0].error
    if error is None:
        exit_with_code(int(ErrorCode.USER_ERROR))
    exit_with_code(pipeline_error_exit_code(error))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
