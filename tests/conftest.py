"""
Shared pytest fixtures for schema-steward tests.

This module provides:
- File-backed SQLite engines (one file per test)
- Settings that ignore the developer's environment and .env file
- Builders for databases created from *old* schema versions
- Fakes for the introspector and the schema sync
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog
from sqlalchemy import event, text
from sqlalchemy.engine import Engine

from steward.core.migrations.introspection import SchemaIntrospector
from steward.core.migrations.sync import SyncReport
from steward.core.orm.session import create_steward_engine
from steward.core.settings import StewardSettings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark scenario tests as integration, everything else as unit."""
    for item in items:
        if "scenario" in Path(str(item.fspath)).name:
            item.add_marker(pytest.mark.integration)
        elif not any(m.name in {"unit", "integration"} for m in item.iter_markers()):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any structlog configuration a test installed."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'steward.db'}"


@pytest.fixture
def engine(db_url: str) -> Generator[Engine, None, None]:
    eng = create_steward_engine(db_url)
    yield eng
    eng.dispose()


@pytest.fixture
def settings(db_url: str) -> StewardSettings:
    return StewardSettings(database_url=db_url, _env_file=None)


class StatementRecorder:
    """Collects every SQL statement an engine executes."""

    def __init__(self, engine: Engine) -> None:
        self.statements: list[str] = []
        event.listen(engine, "before_cursor_execute", self._record)

    def _record(self, conn: Any, cursor: Any, statement: str, *args: Any) -> None:
        self.statements.append(statement)

    def ddl(self, keyword: str = "ALTER") -> list[str]:
        return [s for s in self.statements if s.lstrip().upper().startswith(keyword)]

    def clear(self) -> None:
        self.statements.clear()


@pytest.fixture
def recorder(engine: Engine) -> StatementRecorder:
    return StatementRecorder(engine)


# =============================================================================
# Legacy Schemas
# =============================================================================


LEGACY_USERS = """
CREATE TABLE users (
    id VARCHAR(255) PRIMARY KEY,
    email VARCHAR(255),
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL
)
"""

LEGACY_LEADERBOARD_ITEMS = """
CREATE TABLE leaderboard_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id VARCHAR(255) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    "interval" VARCHAR(32) NOT NULL,
    "by" INTEGER,
    total INTEGER NOT NULL DEFAULT 0,
    "key" VARCHAR(255),
    rank INTEGER,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP NOT NULL
)
"""

LEGACY_DIAGNOSTICS_WITH_FK = """
CREATE TABLE diagnostics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id VARCHAR(255),
    platform VARCHAR(255),
    architecture VARCHAR(255),
    plugin VARCHAR(255),
    cli_version VARCHAR(255),
    logs TEXT,
    stack_trace TEXT,
    CONSTRAINT fk_diagnostics_user FOREIGN KEY (user_id) REFERENCES users(id)
)
"""

LEGACY_DIAGNOSTICS_NO_FK = """
CREATE TABLE diagnostics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id VARCHAR(255),
    platform VARCHAR(255),
    architecture VARCHAR(255),
    plugin VARCHAR(255),
    cli_version VARCHAR(255),
    logs TEXT,
    stack_trace TEXT
)
"""


def create_legacy_schema(engine: Engine, *statements: str) -> None:
    with engine.begin() as conn:
        for statement in statements:
            conn.execute(text(statement))


@pytest.fixture
def legacy_leaderboard(engine: Engine) -> Engine:
    """Database created from the schema that still had ``leaderboard_items.rank``."""
    create_legacy_schema(engine, LEGACY_USERS, LEGACY_LEADERBOARD_ITEMS)
    with engine.begin() as conn:
        conn.execute(text("INSERT INTO users (id) VALUES ('alice')"))
        conn.execute(
            text(
                'INSERT INTO leaderboard_items (user_id, "interval", total, rank) '
                "VALUES ('alice', 'last_7_days', 3600, 1)"
            )
        )
    return engine


@pytest.fixture
def legacy_diagnostics(engine: Engine) -> Engine:
    """``diagnostics.user_id`` present but ``fk_diagnostics_user`` already gone."""
    create_legacy_schema(engine, LEGACY_USERS, LEGACY_DIAGNOSTICS_NO_FK)
    with engine.begin() as conn:
        conn.execute(text("INSERT INTO diagnostics (user_id, platform) VALUES ('alice', 'linux')"))
    return engine


# =============================================================================
# Fakes
# =============================================================================


class CountingIntrospector(SchemaIntrospector):
    """Real introspector that counts how often each predicate was asked."""

    def __init__(self, engine: Engine) -> None:
        super().__init__(engine)
        self.calls: Counter[str] = Counter()

    def table_exists(self, entity: Any) -> bool:
        self.calls["table_exists"] += 1
        return super().table_exists(entity)

    def column_exists(self, entity: Any, column: str) -> bool:
        self.calls["column_exists"] += 1
        return super().column_exists(entity, column)

    def constraint_exists(self, entity: Any, constraint: str) -> bool:
        self.calls["constraint_exists"] += 1
        return super().constraint_exists(entity, constraint)

    @property
    def total(self) -> int:
        return sum(self.calls.values())


class RecordingSync:
    """Schema sync fake that records when it was called."""

    def __init__(self, journal: list[str] | None = None, error: Exception | None = None) -> None:
        self.journal = journal if journal is not None else []
        self.error = error
        self.calls = 0

    def sync(self, engine: Engine) -> SyncReport:
        self.calls += 1
        self.journal.append("sync")
        if self.error is not None:
            raise self.error
        return SyncReport()


@pytest.fixture
def counting_introspector() -> type[CountingIntrospector]:
    return CountingIntrospector


@pytest.fixture
def recording_sync() -> type[RecordingSync]:
    return RecordingSync


@pytest.fixture
def legacy_schema() -> Any:
    """Access to the legacy DDL strings and the builder."""

    class _Legacy:
        users = LEGACY_USERS
        leaderboard_items = LEGACY_LEADERBOARD_ITEMS
        diagnostics_with_fk = LEGACY_DIAGNOSTICS_WITH_FK
        diagnostics_no_fk = LEGACY_DIAGNOSTICS_NO_FK
        create = staticmethod(create_legacy_schema)

    return _Legacy
