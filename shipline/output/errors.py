"""Error presentation utilities.

Centralized error formatting and exit code mapping for consistent UX.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shipline.core.errors import ErrorCode
from shipline.output.console import Style
from shipline.pipeline.errors import PipelineError

if TYPE_CHECKING:
    from shipline.output.console import ConsoleProtocol

__all__ = ["print_pipeline_error", "pipeline_error_exit_code"]


def print_pipeline_error(error: PipelineError, console: ConsoleProtocol) -> None:
    """Print a pipeline error to console with appropriate formatting."""
    match error:
        case PipelineError(kind="gh_missing", message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case PipelineError(kind="tag_exists", message=message, hint=hint):
            console.error(f"refusing to publish: {message}")
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case PipelineError(kind="anchor_missing", message=message, hint=hint):
            console.error(f"rewrite anchor missing: {message}")
            if hint:
                console.print(f"hint: {hint}", Style.DIM)
        case PipelineError(message=message, hint=hint):
            console.error(message)
            if hint:
                console.print(hint, Style.DIM)


def pipeline_error_exit_code(error: PipelineError) -> int:
    """Get exit code for a pipeline error."""
    match error.kind:
        case "invalid_input":
            return int(ErrorCode.USER_ERROR)
        case "gh_missing" | "git_failed":
            return int(ErrorCode.ENV_ERROR)
        case "validation_failed":
            return int(ErrorCode.VALIDATION_ERROR)
        case "build_failed":
            return int(ErrorCode.BUILD_ERROR)
        case "aggregation_failed":
            return int(ErrorCode.AGGREGATION_ERROR)
        case "publish_failed" | "tag_exists":
            return int(ErrorCode.PUBLISH_ERROR)
        case "propagation_failed" | "anchor_missing":
            return int(ErrorCode.PROPAGATION_ERROR)
