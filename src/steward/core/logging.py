"""
Structured logging for schema-steward.

The migration engine reports everything it does through log lines: which
migration ran, which DDL sub-step failed, whether the ledger could be
written. ``configure_logging`` is called once by the bootstrap; modules
only ever call ``get_logger(__name__)`` and log events with keyword
context.

Architecture:
    ::

        configure_logging(level="INFO", json_format=None, service="steward")
            │
            ▼
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars          phase=pre|post while a phase runs
          3. add_log_level
          4. _add_service_metadata
          5. _elasticsearch_compatible  (JSON only)
          6. JSONRenderer | ConsoleRenderer

        logger = get_logger(__name__)
        logger.info("running migration", migration="20221016-drop_rank_column")

Tags:
    logging, structlog, json-logging, schema-steward

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "steward"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Rename ``timestamp``/``level`` to their ECS field names."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def _level_number(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level!r}")
    return value


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "steward",
) -> None:
    """Configure structlog for the process.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        json_format: True for JSON, False for console, None for JSON unless
            stdout is a terminal
        service: Value of the ``service.name`` field

    Raises:
        ValueError: If *level* is not a known level name
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service
    level_no = _level_number(level)

    if json_format is None:
        json_format = not sys.stdout.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]
    if json_format:
        processors += [_elasticsearch_compatible, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and alembic log through the standard library
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level_no)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind keys to every log line emitted inside the ``with`` block.

    Example:
        with LogContext(phase="pre"):
            logger.info("running migration", migration=name)
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        structlog.contextvars.bind_contextvars(**self._context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self._context)


__all__ = ["configure_logging", "get_logger", "LogContext"]
