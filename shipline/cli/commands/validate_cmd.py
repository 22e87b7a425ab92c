from __future__ import annotations

from shipline.cli.commands._helpers import exit_on_error
from shipline.cli.context import build_context


def validate() -> None:
    """Run format check, lint and tests; stop at the first failure."""
    ctx = build_context()
    exit_on_error(ctx.service().validate(), ctx)
    ctx.console.success("validation passed")
