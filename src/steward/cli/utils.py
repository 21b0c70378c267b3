"""
CLI utility helpers for settings and output formatting.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from steward.core.errors import StewardError
from steward.core.settings import StewardSettings, load_settings

console = Console()
err_console = Console(stderr=True)


def make_settings(
    config: Path | None = None,
    database_url: str | None = None,
    **overrides: Any,
) -> StewardSettings:
    """Load settings for a CLI command; exits with code 2 on bad configuration."""
    if database_url:
        overrides["database_url"] = database_url
    try:
        return load_settings(config, **overrides)
    except StewardError as exc:
        err_console.print(f"[bold red]Error[/bold red] ({exc.category.value}): {exc.message}")
        raise typer.Exit(code=2) from exc


def print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, default=str))


def print_table(title: str, columns: list[str], rows: list[list[Any]]) -> None:
    table = Table(title=title)
    for column in columns:
        table.add_column(column)
    for row in rows:
        table.add_row(*["" if value is None else str(value) for value in row])
    console.print(table)
