"""
Structured error types for schema-steward.

Provides a small hierarchy of typed errors with metadata for logging and
for telling configuration mistakes apart from database trouble.

Errors are only *raised* at configuration time: building the registry,
validating descriptors, loading settings. Everything that goes wrong while
the migration pass is running (a failed DDL statement, an unreadable
ledger, a broken schema sync) is absorbed and logged, because a legacy
cleanup failing must never keep the service from starting. The runtime
code still uses these types to classify what it logs.

Manifesto:
    - **Typed Error Hierarchy:** Config errors vs. database errors
    - **Rich Context:** Errors carry the migration, table and column involved
    - **Error Chaining:** Preserve the original driver exception as ``cause``

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       StewardError                               │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError                  DatabaseError                      │
        │  (CONFIG)                     (DATABASE)                         │
        │       │                            │                             │
        │  InvalidConfigError           LedgerError                        │
        │  InvalidMigrationError        SchemaSyncError                    │
        │  DuplicateMigrationError      MutationError                      │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = DuplicateMigrationError("20221016-drop_rank_column")
    >>> error.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> error.context.migration
    '20221016-drop_rank_column'

    >>> try:
    ...     raise RuntimeError("no such column: rank")
    ... except RuntimeError as e:
    ...     err = MutationError("drop column failed", cause=e).with_context(
    ...         table="leaderboard_items", column="rank"
    ...     )
    >>> err.to_dict()["context"]
    {'table': 'leaderboard_items', 'column': 'rank'}

Tags:
    exception, error-hierarchy, error-context, schema-steward

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        DATABASE: Connection, DDL and query errors
        CONFIG: Missing or invalid settings, bad registrations
        MIGRATION: A migration body misbehaved
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    DATABASE = "DATABASE"
    CONFIG = "CONFIG"
    MIGRATION = "MIGRATION"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Only the fields that are set end up in ``to_dict()``; anything that
    does not fit a typed field goes into ``metadata``.

    Attributes:
        migration: Name of the migration involved
        phase: Migration phase (``pre`` / ``post``)
        table: Table the failing statement targeted
        column: Column the failing statement targeted
        constraint: Constraint the failing statement targeted
        dialect: SQLAlchemy dialect name of the database
        metadata: Additional key-value pairs
    """

    migration: str | None = None
    phase: str | None = None
    table: str | None = None
    column: str | None = None
    constraint: str | None = None
    dialect: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["migration", "phase", "table", "column", "constraint", "dialect"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StewardError(Exception):
    """
    Base exception for all schema-steward errors.

    Every instance carries:
    - **category:** ErrorCategory enum for classification
    - **retryable:** Whether repeating the operation could help
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = StewardError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.retryable
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StewardError:
        """
        Add context to this error (fluent API).

        Usage:
            raise LedgerError("write failed").with_context(migration="20221016-drop_rank_column")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(StewardError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


class InvalidMigrationError(ConfigError):
    """A migration descriptor is malformed (bad name, missing body)."""

    def __init__(self, name: Any, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid migration {name!r}: {reason}")
        self.context.migration = name if isinstance(name, str) else None


class DuplicateMigrationError(ConfigError):
    """The same migration name was registered twice."""

    def __init__(self, name: str, existing_phase: str | None = None):
        self.name = name
        self.existing_phase = existing_phase
        message = f"Migration '{name}' is already registered"
        if existing_phase:
            message += f" in the {existing_phase} phase"
        super().__init__(message)
        self.context.migration = name
        self.context.phase = existing_phase


# =============================================================================
# DATABASE ERRORS
# =============================================================================


class DatabaseError(StewardError):
    """Database query, DDL or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class LedgerError(DatabaseError):
    """Reading or writing the migration ledger failed."""

    default_retryable = True


class SchemaSyncError(DatabaseError):
    """The additive schema sync could not complete."""

    pass


class MutationError(DatabaseError):
    """A single DDL sub-step of a migration failed."""

    default_category = ErrorCategory.MIGRATION


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, StewardError):
        return error.category
    if isinstance(error, SQLAlchemyError):
        return ErrorCategory.DATABASE
    if isinstance(error, NotImplementedError):
        return ErrorCategory.DATABASE
    if isinstance(error, (KeyError, AttributeError, ValueError)):
        return ErrorCategory.CONFIG
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StewardError",
    # Config
    "ConfigError",
    "InvalidConfigError",
    "InvalidMigrationError",
    "DuplicateMigrationError",
    # Database
    "DatabaseError",
    "LedgerError",
    "SchemaSyncError",
    "MutationError",
    # Utilities
    "categorize_error",
]
