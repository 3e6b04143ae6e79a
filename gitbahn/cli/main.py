"""Top-level callback for the gitbahn CLI."""

from typing import Optional

import typer

from gitbahn import __version__


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"gitbahn {__version__}")
        raise typer.Exit()


def main_command(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show the version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Split a bulk change into a paced, natural-looking commit history."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
