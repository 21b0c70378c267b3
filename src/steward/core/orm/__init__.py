"""SQLAlchemy 2.0 ORM layer for schema-steward.

Modules
-------
base        StewardBase (declarative base with naming convention)
session     Engine factory, StewardSession
tables      Migration ledger table + current entity definitions

Tags:
    schema-steward, orm, sqlalchemy, declarative

Doc-Types:
    package-overview, module-index
"""

from __future__ import annotations

from steward.core.orm.base import StewardBase
from steward.core.orm.session import (
    StewardSession,
    create_steward_engine,
    steward_session_factory,
)
from steward.core.orm.tables import (
    LEDGER_TABLE_NAME,
    DiagnosticsTable,
    LeaderboardItemTable,
    MigrationLedgerTable,
    UserTable,
)

__all__ = [
    "StewardBase",
    "create_steward_engine",
    "StewardSession",
    "steward_session_factory",
    "LEDGER_TABLE_NAME",
    "MigrationLedgerTable",
    "UserTable",
    "DiagnosticsTable",
    "LeaderboardItemTable",
]
