"""Durable record of which migrations have completed.

The ledger is one table (``steward_migrations``) in the database being
migrated, keyed by migration name.  It is the only shared mutable state
of the engine and ``MigrationLedger`` is the only writer.

Failure policy: nothing raised in here reaches the runner.

* read failure  -> logged as a warning, treated as "not completed"
* write failure -> logged as a warning; the migration runs again on the
  next startup and its guard has to cope with that
* missing table -> not an error; ``mark_completed`` creates it on demand,
  so a pre-phase migration on a brand-new database is recorded too
"""

from __future__ import annotations

import datetime
from collections.abc import Callable

from sqlalchemy import inspect, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from steward.core.errors import LedgerError
from steward.core.logging import get_logger
from steward.core.migrations.models import MigrationRecord
from steward.core.orm.session import steward_session_factory
from steward.core.orm.tables import MigrationLedgerTable

logger = get_logger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class MigrationLedger:
    """Ledger backed by ``MigrationLedgerTable``.

    Parameters
    ----------
    engine
        Engine of the database being migrated.
    clock
        Returns the completion timestamp; injectable for tests.

    Example::

        ledger = MigrationLedger(engine)
        if not ledger.has_completed("20221016-drop_rank_column"):
            ...
            ledger.mark_completed("20221016-drop_rank_column")
    """

    def __init__(
        self, engine: Engine, clock: Callable[[], datetime.datetime] = _utcnow
    ) -> None:
        self._engine = engine
        self._sessions = steward_session_factory(engine)
        self._clock = clock
        self._table = MigrationLedgerTable.__table__

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def has_completed(self, name: str) -> bool:
        """True iff a ledger row exists for *name*.

        Safe before the ledger table exists (first-ever startup).
        """
        try:
            if not self._table_exists():
                return False
            with self._sessions() as session:
                return session.get(MigrationLedgerTable, name) is not None
        except SQLAlchemyError as exc:
            self._warn(LedgerError("failed to read migration ledger", cause=exc), name)
            return False

    def mark_completed(self, name: str) -> bool:
        """Record *name* as completed with the current timestamp.

        Idempotent: a second write for the same name just moves the
        timestamp.  Returns ``False`` (after logging a warning) if the
        write could not be persisted.
        """
        try:
            self.ensure_table()
        except SQLAlchemyError as exc:
            self._warn(LedgerError("failed to create migration ledger", cause=exc), name)
            return False

        try:
            with self._sessions() as session:
                session.merge(MigrationLedgerTable(name=name, completed_at=self._clock()))
                session.commit()
        except IntegrityError:
            # A concurrently starting instance recorded the same name first
            logger.debug("migration already recorded by another instance", migration=name)
            return True
        except SQLAlchemyError as exc:
            self._warn(LedgerError("failed to mark migration as completed", cause=exc), name)
            return False
        return True

    def records(self) -> list[MigrationRecord]:
        """All ledger rows ordered by name; empty if unreadable."""
        try:
            if not self._table_exists():
                return []
            with self._sessions() as session:
                rows = session.scalars(
                    select(MigrationLedgerTable).order_by(MigrationLedgerTable.name)
                ).all()
        except SQLAlchemyError as exc:
            self._warn(LedgerError("failed to read migration ledger", cause=exc))
            return []
        return [MigrationRecord(name=row.name, completed_at=_as_utc(row.completed_at)) for row in rows]

    def completed_names(self) -> set[str]:
        return {record.name for record in self.records()}

    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist yet."""
        self._table.create(self._engine, checkfirst=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _table_exists(self) -> bool:
        return inspect(self._engine).has_table(self._table.name)

    def _warn(self, error: LedgerError, name: str | None = None) -> None:
        if name is not None:
            error.with_context(migration=name)
        logger.warning(error.message, **error.to_dict())


__all__ = ["MigrationLedger"]
