"""Additive schema sync: create what the entity definitions declare.

This is the step that runs between the pre- and post-phase.  It brings the
database up to the *current* entity definitions by adding things only:

* tables missing from the database are created (``create_all``)
* columns missing from existing tables are added (``ALTER TABLE ... ADD COLUMN``)

It never drops or alters anything; that is what the registered
destructive migrations are for.  A NOT NULL column without a server
default cannot be added to a table that already has rows, so such
columns are added as nullable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Column, DefaultClause, MetaData, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from steward.core.errors import SchemaSyncError
from steward.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SyncReport:
    """What one sync pass changed."""

    created_tables: list[str] = field(default_factory=list)
    added_columns: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created_tables or self.added_columns)

    def to_dict(self) -> dict[str, Any]:
        return {
            "created_tables": list(self.created_tables),
            "added_columns": list(self.added_columns),
            "errors": list(self.errors),
        }


@runtime_checkable
class SchemaSync(Protocol):
    def sync(self, engine: Engine) -> SyncReport: ...


def _addable_column(column: Column[Any]) -> Column[Any]:
    server_default = None
    if isinstance(column.server_default, DefaultClause):
        server_default = column.server_default.arg
    nullable = column.nullable or server_default is None
    return Column(column.name, column.type, nullable=nullable, server_default=server_default)


class MetadataSchemaSync:
    """``SchemaSync`` driven by a SQLAlchemy ``MetaData``.

    Example::

        from steward.core.orm import StewardBase

        report = MetadataSchemaSync(StewardBase.metadata).sync(engine)
        print(report.created_tables)
    """

    def __init__(self, metadata: MetaData) -> None:
        self._metadata = metadata

    def sync(self, engine: Engine) -> SyncReport:
        """Create missing tables and columns.

        Raises:
            SchemaSyncError: If the tables could not be created.  Failures to
                add individual columns are reported in ``SyncReport.errors``.
        """
        report = SyncReport()
        try:
            existing = self._existing_tables(engine)
            self._metadata.create_all(engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise SchemaSyncError("failed to create missing tables", cause=exc) from exc

        for table in self._metadata.sorted_tables:
            if (table.schema, table.name) not in existing:
                report.created_tables.append(table.name)
                continue
            self._add_missing_columns(engine, table, report)

        if report.changed:
            logger.info(
                "schema synced",
                created_tables=report.created_tables,
                added_columns=report.added_columns,
            )
        return report

    def _existing_tables(self, engine: Engine) -> set[tuple[str | None, str]]:
        inspector = inspect(engine)
        schemas = {table.schema for table in self._metadata.sorted_tables}
        return {
            (schema, name)
            for schema in schemas
            for name in inspector.get_table_names(schema=schema)
        }

    def _add_missing_columns(self, engine: Engine, table: Any, report: SyncReport) -> None:
        present = {col["name"] for col in inspect(engine).get_columns(table.name, schema=table.schema)}
        for column in table.columns:
            if column.name in present:
                continue
            qualified = f"{table.name}.{column.name}"
            try:
                with engine.begin() as conn:
                    Operations(MigrationContext.configure(conn)).add_column(
                        table.name, _addable_column(column), schema=table.schema
                    )
            except Exception as exc:
                report.errors.append(f"failed to add column {qualified} ({exc})")
                logger.warning("failed to add column", table=table.name, column=column.name, error=str(exc))
                continue
            report.added_columns.append(qualified)


__all__ = ["SyncReport", "SchemaSync", "MetadataSchemaSync"]
