"""Validation Gate: format check, lint, tests, in that order."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from shipline.core.result import Err, Ok, Result
from shipline.output.console import ConsoleProtocol
from shipline.pipeline.errors import PipelineError
from shipline.pipeline.model import ValidationStep
from shipline.pipeline.timeouts import VALIDATION_TIMEOUT_SECONDS
from shipline.platform.process import run as run_process


def run_validation(
    *,
    project_root: Path,
    steps: Sequence[ValidationStep],
    console: ConsoleProtocol,
) -> Result[None, PipelineError]:
    """Run each step and stop at the first failure, naming the failed step."""
    for step in steps:
        cmd = list(step.command)
        console.command(cmd)
        result = run_process(cmd, cwd=project_root, timeout=VALIDATION_TIMEOUT_SECONDS)
        if isinstance(result, Err):
            e = result.error
            return Err(
                PipelineError(
                    kind="validation_failed",
                    message=f"{step.name} failed: {e}",
                    hint=e.detail(),
                )
            )
        console.success(step.name)
    return Ok(None)
