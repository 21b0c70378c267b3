"""SQLAlchemy 2.0 table definitions.

Two kinds of tables live here:

* ``MigrationLedgerTable`` -- the ledger of completed migrations, owned
  exclusively by ``steward.core.migrations.ledger.MigrationLedger``.
* The *current* entity definitions of the service.  The additive schema
  sync creates them as declared here; columns and constraints that were
  removed from these classes are cleaned up by the destructive migrations
  in ``steward.core.migrations.versions``.

Removed artifacts, for reference when reading old databases:

* ``diagnostics.user_id`` + constraint ``fk_diagnostics_user``
* ``leaderboard_items.rank``

Tags:
    schema-steward, orm, sqlalchemy, tables

Doc-Types:
    api-reference, data-model
"""

from __future__ import annotations

import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from steward.core.orm.base import StewardBase

LEDGER_TABLE_NAME = "steward_migrations"


class MigrationLedgerTable(StewardBase):
    __tablename__ = LEDGER_TABLE_NAME

    name: Mapped[str] = mapped_column(String(255), primary_key=True)
    completed_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )


class UserTable(StewardBase):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )


class DiagnosticsTable(StewardBase):
    __tablename__ = "diagnostics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    platform: Mapped[str | None] = mapped_column(String(255))
    architecture: Mapped[str | None] = mapped_column(String(255))
    plugin: Mapped[str | None] = mapped_column(String(255))
    cli_version: Mapped[str | None] = mapped_column(String(255))
    logs: Mapped[str | None] = mapped_column(Text)
    stack_trace: Mapped[str | None] = mapped_column(Text)


class LeaderboardItemTable(StewardBase):
    __tablename__ = "leaderboard_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    interval: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    by: Mapped[int | None] = mapped_column(Integer)
    total: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    key: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()
    )


__all__ = [
    "LEDGER_TABLE_NAME",
    "MigrationLedgerTable",
    "UserTable",
    "DiagnosticsTable",
    "LeaderboardItemTable",
]
