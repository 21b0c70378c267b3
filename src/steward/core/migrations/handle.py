"""The database handle a migration body works with.

A body follows the same shape every time::

    def drop_rank_column(db: MigrationHandle, settings: StewardSettings) -> MigrationResult:
        if not db.has_column(LeaderboardItemTable, "rank"):
            return db.noop()                       # guard false: nothing to do

        db.begin()                                 # "running migration" log line
        db.drop_column(LeaderboardItemTable, "rank")
        return db.result()                         # APPLIED / APPLIED_WITH_WARNINGS

Guard predicates go straight to the introspector, so they always see the
live schema.  Mutation sub-steps never raise: each one runs in its own
transaction, and a failure is logged as a warning, remembered for the
result, and reported back as ``False``.  The next sub-step runs
regardless.  That is what keeps a failed constraint drop from blocking the
column drop that follows it, and a failed migration from blocking startup.

DDL is emitted through alembic ``Operations`` so each statement is
rendered for the connected dialect (``DROP FOREIGN KEY`` on MySQL,
``DROP CONSTRAINT`` elsewhere).  SQLite has no ``ALTER TABLE ... DROP
CONSTRAINT`` and refuses to drop a column a foreign key uses, so on SQLite
constraint and column drops go through ``batch_alter_table``, which copies
the table without the dropped piece.  Foreign key enforcement is switched
off for the copy so the ``DROP TABLE`` of the old table cannot cascade into
rows that reference it.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection, Engine

from steward.core.errors import MutationError, categorize_error
from steward.core.logging import get_logger
from steward.core.migrations.introspection import Entity, Introspector, table_name
from steward.core.migrations.models import MigrationResult

logger = get_logger(__name__)


class MigrationHandle:
    """Guard predicates and non-fatal mutation sub-steps for one migration."""

    def __init__(self, name: str, engine: Engine, introspector: Introspector) -> None:
        self.name = name
        self.engine = engine
        self.introspector = introspector
        self._errors: list[str] = []
        self._begun = False
        self._rebuild_tables = engine.dialect.name == "sqlite"

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def has_table(self, entity: Entity) -> bool:
        return self.introspector.table_exists(entity)

    def has_column(self, entity: Entity, column: str) -> bool:
        return self.introspector.column_exists(entity, column)

    def has_constraint(self, entity: Entity, constraint: str) -> bool:
        return self.introspector.constraint_exists(entity, constraint)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def begin(self) -> MigrationHandle:
        """Announce that the guard passed and DDL is about to run."""
        if not self._begun:
            self._begun = True
            logger.info("running migration", migration=self.name)
        return self

    def drop_constraint(self, entity: Entity, constraint: str, type_: str | None = "foreignkey") -> bool:
        table = table_name(entity)
        step = (
            self._batch(table, lambda batch: batch.drop_constraint(constraint, type_=type_))
            if self._rebuild_tables
            else lambda op: op.drop_constraint(constraint, table, type_=type_)
        )
        return self._attempt(
            f"failed to drop '{constraint}' constraint of {table}",
            step,
            table=table,
            constraint=constraint,
        )

    def drop_column(self, entity: Entity, column: str) -> bool:
        table = table_name(entity)
        step = (
            self._batch(table, lambda batch: batch.drop_column(column))
            if self._rebuild_tables
            else lambda op: op.drop_column(table, column)
        )
        return self._attempt(
            f"failed to drop {column} column of {table}",
            step,
            table=table,
            column=column,
        )

    def drop_table(self, entity: Entity) -> bool:
        table = table_name(entity)
        return self._attempt(
            f"failed to drop table {table}",
            lambda op: op.drop_table(table),
            table=table,
        )

    def execute_ddl(self, statement: str, **context: Any) -> bool:
        """Run a raw DDL statement as one sub-step."""
        return self._attempt(
            "failed to execute DDL statement",
            lambda op: op.execute(statement),
            **context,
        )

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    @property
    def errors(self) -> tuple[str, ...]:
        return tuple(self._errors)

    @property
    def begun(self) -> bool:
        return self._begun

    def noop(self) -> MigrationResult:
        logger.debug("migration guard false, nothing to do", migration=self.name)
        return MigrationResult.noop(self.name)

    def result(self) -> MigrationResult:
        if self._errors:
            return MigrationResult.applied_with_warnings(self.name, self._errors)
        return MigrationResult.applied(self.name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _attempt(self, message: str, step: Callable[[Operations], Any], **context: Any) -> bool:
        self.begin()
        try:
            with self.engine.connect() as conn, self._foreign_keys_off(conn), conn.begin():
                step(Operations(MigrationContext.configure(conn)))
        except Exception as exc:
            error = MutationError(message, category=categorize_error(exc), cause=exc).with_context(
                migration=self.name, dialect=self.engine.dialect.name, **context
            )
            self._errors.append(f"{message} ({exc})")
            logger.warning(message, **error.to_dict())
            return False
        return True

    @staticmethod
    def _batch(table: str, apply: Callable[[Any], Any]) -> Callable[[Operations], None]:
        def step(op: Operations) -> None:
            with op.batch_alter_table(table, recreate="auto") as batch:
                apply(batch)

        return step

    @contextmanager
    def _foreign_keys_off(self, conn: Connection) -> Iterator[None]:
        # SQLite ignores PRAGMA foreign_keys inside a transaction
        if not self._rebuild_tables:
            yield
            return
        enabled = conn.exec_driver_sql("PRAGMA foreign_keys").scalar()
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        conn.commit()
        try:
            yield
        finally:
            conn.exec_driver_sql(f"PRAGMA foreign_keys={'ON' if enabled else 'OFF'}")
            conn.commit()


__all__ = ["MigrationHandle"]
