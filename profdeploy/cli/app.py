# SPDX-License-Identifier: MIT
from __future__ import annotations

import typer

from profdeploy import __version__
from profdeploy.cli.commands.list_cmd import list_profiles
from profdeploy.cli.commands.run_cmd import run


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# Commands
app.command()(run)
app.command("list")(list_profiles)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    """Deploy multiple application profiles from one host."""


def main() -> None:
    app()
