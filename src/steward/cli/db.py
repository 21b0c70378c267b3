"""
CLI: ``steward db`` migration commands.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from steward.cli.utils import console, make_settings, print_json, print_table

app = typer.Typer(no_args_is_help=True)

_OUTCOME_STYLES = {
    "applied": "green",
    "applied_with_warnings": "yellow",
    "failed": "red",
    "noop_guard_false": "dim",
    "skipped": "dim",
}


@app.command()
def migrate(
    database_url: str | None = typer.Option(None, "--database-url", "-d", help="SQLAlchemy database URL"),
    config: Path | None = typer.Option(None, "--config", "-c", help="YAML config file"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Run the migration pass (pre-phase, schema sync, post-phase)."""
    from steward.app import startup

    settings = make_settings(config, database_url)
    engine, report = startup(settings)
    engine.dispose()

    if json_out:
        print_json(report.to_dict())
        return
    if report.skipped_by_config:
        console.print("Migrations are disabled by configuration.")
        return
    for result in report.results:
        style = _OUTCOME_STYLES[result.outcome.value]
        console.print(f"{result.name}: [{style}]{result.outcome.value}[/{style}]")
        for error in result.errors:
            console.print(f"  [yellow]warning[/yellow] {escape(error)}")
    if report.sync_error:
        console.print(f"[red]schema sync failed[/red]: {escape(report.sync_error)}")


@app.command()
def status(
    database_url: str | None = typer.Option(None, "--database-url", "-d"),
    config: Path | None = typer.Option(None, "--config", "-c"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show registered migrations and when each completed."""
    from steward.app import create_engine_from_settings
    from steward.core.migrations import MigrationLedger, build_registry

    settings = make_settings(config, database_url)
    engine = create_engine_from_settings(settings)
    try:
        completed = {record.name: record for record in MigrationLedger(engine).records()}
    finally:
        engine.dispose()

    rows = []
    for descriptor in build_registry():
        record = completed.get(descriptor.name)
        rows.append(
            {
                "name": descriptor.name,
                "phase": descriptor.phase.value,
                "completed_at": record.completed_at.isoformat() if record else None,
            }
        )

    if json_out:
        print_json(rows)
        return
    print_table(
        "Migrations",
        ["Name", "Phase", "Completed"],
        [[r["name"], r["phase"], r["completed_at"] or "pending"] for r in rows],
    )


@app.command()
def pending(
    database_url: str | None = typer.Option(None, "--database-url", "-d"),
    config: Path | None = typer.Option(None, "--config", "-c"),
) -> None:
    """List migrations that have not completed yet, in execution order."""
    from steward.app import create_engine_from_settings
    from steward.core.migrations import MigrationLedger, build_registry

    settings = make_settings(config, database_url)
    engine = create_engine_from_settings(settings)
    try:
        done = MigrationLedger(engine).completed_names()
    finally:
        engine.dispose()

    names = [name for name in build_registry().names() if name not in done]
    if not names:
        console.print("Nothing pending.")
        return
    for name in names:
        console.print(name)
