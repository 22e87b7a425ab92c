from __future__ import annotations

import json

import typer

from shipline.cli.context import build_context
from shipline.pipeline.matrix import github_matrix


def matrix() -> None:
    """Print the build matrix as a GitHub Actions strategy.matrix JSON document."""
    ctx = build_context()
    doc = github_matrix(ctx.config.matrix, project=ctx.config.project)
    typer.echo(json.dumps(doc, separators=(",", ":")))
