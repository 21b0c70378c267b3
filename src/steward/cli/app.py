"""
Root Typer application for the steward CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from steward import __version__

app = Typer(
    name="steward",
    help="steward: run-once schema migrations for long-running services.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"schema-steward {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """steward CLI: run and inspect schema migrations."""


from steward.cli.db import app as db_app  # noqa: E402

app.add_typer(db_app, name="db", help="Database migrations.")
