"""Value types shared by the migration engine.

* ``Phase``              -- before or after the additive schema sync
* ``MigrationOutcome``   -- tagged outcome kind of one ``execute`` call
* ``MigrationResult``    -- outcome + the sub-step errors behind it
* ``MigrationDescriptor``-- a registered, named migration body
* ``MigrationRecord``    -- one ledger row
"""

from __future__ import annotations

import datetime
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from steward.core.errors import InvalidMigrationError

if TYPE_CHECKING:
    from steward.core.migrations.handle import MigrationHandle
    from steward.core.settings import StewardSettings


class Phase(str, Enum):
    """Position of a migration relative to the additive schema sync."""

    PRE = "pre"
    POST = "post"


class MigrationOutcome(str, Enum):
    """What happened when a migration was executed.

    ``FAILED`` is reserved for a body that raised outside of a mutation
    sub-step (for example while evaluating its guard).  Like every other
    outcome it is followed by a ledger write.
    """

    SKIPPED = "skipped"
    APPLIED = "applied"
    APPLIED_WITH_WARNINGS = "applied_with_warnings"
    NOOP_GUARD_FALSE = "noop_guard_false"
    FAILED = "failed"


@dataclass(frozen=True)
class MigrationResult:
    """Tagged result of executing one migration.

    Examples:
        >>> MigrationResult.noop("20221016-drop_rank_column").outcome
        <MigrationOutcome.NOOP_GUARD_FALSE: 'noop_guard_false'>
        >>> r = MigrationResult.applied_with_warnings("m", ["constraint not found"])
        >>> r.ok, r.attempted_work
        (False, True)
    """

    name: str
    outcome: MigrationOutcome
    errors: tuple[str, ...] = ()

    @classmethod
    def skipped(cls, name: str) -> MigrationResult:
        return cls(name, MigrationOutcome.SKIPPED)

    @classmethod
    def applied(cls, name: str) -> MigrationResult:
        return cls(name, MigrationOutcome.APPLIED)

    @classmethod
    def applied_with_warnings(cls, name: str, errors: list[str] | tuple[str, ...]) -> MigrationResult:
        return cls(name, MigrationOutcome.APPLIED_WITH_WARNINGS, tuple(errors))

    @classmethod
    def noop(cls, name: str) -> MigrationResult:
        return cls(name, MigrationOutcome.NOOP_GUARD_FALSE)

    @classmethod
    def failed(cls, name: str, error: str) -> MigrationResult:
        return cls(name, MigrationOutcome.FAILED, (error,))

    @property
    def attempted_work(self) -> bool:
        """True if the guard passed and DDL was attempted."""
        return self.outcome in (MigrationOutcome.APPLIED, MigrationOutcome.APPLIED_WITH_WARNINGS)

    @property
    def ok(self) -> bool:
        """True if nothing went wrong (a skip or a no-op counts as fine)."""
        return not self.errors and self.outcome is not MigrationOutcome.FAILED

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "outcome": self.outcome.value, "errors": list(self.errors)}


MigrationBody = Callable[["MigrationHandle", "StewardSettings"], MigrationResult]


@dataclass(frozen=True)
class MigrationDescriptor:
    """A named migration and the phase it runs in.

    Names are the ledger key and the identifier in logs.  By convention
    they start with a sortable date or version prefix
    (``20221016-drop_rank_column``) so lexicographic order is
    chronological order.
    """

    name: str
    phase: Phase
    body: MigrationBody = field(repr=False, compare=False)
    description: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise InvalidMigrationError(self.name, "name must be a non-empty string")
        if any(ch.isspace() for ch in self.name):
            raise InvalidMigrationError(self.name, "name must not contain whitespace")
        if len(self.name) > 255:
            raise InvalidMigrationError(self.name, "name must be at most 255 characters")
        if not callable(self.body):
            raise InvalidMigrationError(self.name, "body must be callable")
        if not isinstance(self.phase, Phase):
            try:
                object.__setattr__(self, "phase", Phase(self.phase))
            except ValueError as exc:
                raise InvalidMigrationError(self.name, f"unknown phase {self.phase!r}") from exc


@dataclass(frozen=True)
class MigrationRecord:
    """One row of the migration ledger."""

    name: str
    completed_at: datetime.datetime

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "completed_at": self.completed_at.isoformat()}


__all__ = [
    "Phase",
    "MigrationOutcome",
    "MigrationResult",
    "MigrationBody",
    "MigrationDescriptor",
    "MigrationRecord",
]
