"""Ordered registry of migrations, one list per phase.

Registration order is execution order within a phase.  The registry does
not sort: ``steward.core.migrations.versions.register_migrations`` is the
one explicit place that decides the order (lexicographic by name).  What
the registry does enforce is name uniqueness across *both* phases, so a
duplicate is a configuration error raised before anything executes.
"""

from __future__ import annotations

from collections.abc import Iterator

from steward.core.errors import DuplicateMigrationError, InvalidMigrationError
from steward.core.logging import get_logger
from steward.core.migrations.models import MigrationDescriptor, Phase

logger = get_logger(__name__)


class MigrationRegistry:
    """Two insertion-ordered sequences of ``MigrationDescriptor``."""

    def __init__(self) -> None:
        self._phases: dict[Phase, list[MigrationDescriptor]] = {Phase.PRE: [], Phase.POST: []}
        self._by_name: dict[str, MigrationDescriptor] = {}

    def register(self, descriptor: MigrationDescriptor) -> MigrationDescriptor:
        """Append *descriptor* to the list of its phase.

        Raises:
            DuplicateMigrationError: If the name is registered in either phase
        """
        existing = self._by_name.get(descriptor.name)
        if existing is not None:
            raise DuplicateMigrationError(descriptor.name, existing.phase.value)
        self._phases[descriptor.phase].append(descriptor)
        self._by_name[descriptor.name] = descriptor
        logger.debug("migration registered", migration=descriptor.name, phase=descriptor.phase.value)
        return descriptor

    def register_pre(self, descriptor: MigrationDescriptor) -> MigrationDescriptor:
        if descriptor.phase is not Phase.PRE:
            raise InvalidMigrationError(descriptor.name, f"declared for the {descriptor.phase.value} phase")
        return self.register(descriptor)

    def register_post(self, descriptor: MigrationDescriptor) -> MigrationDescriptor:
        if descriptor.phase is not Phase.POST:
            raise InvalidMigrationError(descriptor.name, f"declared for the {descriptor.phase.value} phase")
        return self.register(descriptor)

    def list_pre(self) -> tuple[MigrationDescriptor, ...]:
        return tuple(self._phases[Phase.PRE])

    def list_post(self) -> tuple[MigrationDescriptor, ...]:
        return tuple(self._phases[Phase.POST])

    def get(self, name: str) -> MigrationDescriptor | None:
        return self._by_name.get(name)

    def names(self) -> list[str]:
        """All names, pre-phase first, each phase in execution order."""
        return [d.name for d in self]

    def __iter__(self) -> Iterator[MigrationDescriptor]:
        yield from self._phases[Phase.PRE]
        yield from self._phases[Phase.POST]

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name


__all__ = ["MigrationRegistry"]
