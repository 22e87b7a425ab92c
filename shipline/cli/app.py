from __future__ import annotations

import os
from pathlib import Path

import typer

from shipline import __version__
from shipline.cli.commands.build_cmd import build
from shipline.cli.commands.matrix_cmd import matrix
from shipline.cli.commands.plan_cmd import plan
from shipline.cli.commands.propagate_cmd import propagate
from shipline.cli.commands.release_cmd import release
from shipline.cli.commands.run_cmd import run
from shipline.cli.commands.validate_cmd import validate
from shipline.core.errors import ErrorCode


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands, in pipeline order
app.command()(run)
app.command()(validate)
app.command()(build)
app.command()(matrix)
app.command()(plan)
app.command()(release)
app.command()(propagate)


@app.callback(invoke_without_command=True)
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    root: Path | None = typer.Option(
        None,
        "--root",
        help="Project root (overrides auto detection)",
    ),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if root is not None:
        try:
            resolved = root.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --root: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not resolved.is_dir():
            typer.echo(f"error: --root '{resolved}' is not a directory", err=True)
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ["SHIPLINE_ROOT"] = str(resolved)


def main() -> None:
    app()
