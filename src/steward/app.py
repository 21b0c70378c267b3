"""Process bootstrap: settings -> logging -> engine -> migration pass.

A service calls ``startup()`` once, before it builds repositories or
starts listening, and gets back an engine whose schema has been brought
up to date.  Migration problems never make ``startup()`` fail; they show
up in the log and in the returned ``RunReport``.

Example::

    from steward.app import startup

    engine, report = startup()
    app = build_web_app(engine)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from steward import __version__
from steward.core.logging import configure_logging, get_logger
from steward.core.migrations import RunReport, run_migrations
from steward.core.orm.session import create_steward_engine
from steward.core.settings import StewardSettings, load_settings

logger = get_logger(__name__)


def setup_logging(settings: StewardSettings) -> None:
    configure_logging(
        level="DEBUG" if settings.is_dev() else settings.log_level,
        json_format=False if settings.is_dev() else settings.json_logs,
        service=settings.service_name,
    )


def create_engine_from_settings(settings: StewardSettings) -> Engine:
    return create_steward_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.db_max_conn,
        max_overflow=0,
    )


def startup(settings: StewardSettings | None = None) -> tuple[Engine, RunReport]:
    """Configure logging, connect, and run the migration pass."""
    settings = settings or load_settings()
    setup_logging(settings)
    logger.info("starting", version=__version__, dialect=settings.dialect)

    engine = create_engine_from_settings(settings)
    report = run_migrations(engine, settings)
    return engine, report


__all__ = ["setup_logging", "create_engine_from_settings", "startup"]
