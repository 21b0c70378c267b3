"""Every migration the service has ever shipped.

Adding a migration
------------------
1. Create ``m<sortable prefix>_<description>.py`` next to this file with a
   body and a module-level ``migration = MigrationDescriptor(...)``.
2. Import it below and add it to ``MIGRATIONS``.

The list order does not matter: ``register_migrations`` sorts by name, so
the date/version prefix of the name decides execution order within a
phase, independently of how modules happen to be imported.
"""

from __future__ import annotations

from steward.core.migrations.models import MigrationDescriptor, Phase
from steward.core.migrations.registry import MigrationRegistry
from steward.core.migrations.versions import (
    m20221016_drop_rank_column,
    m202203191_drop_diagnostics_user,
)

MIGRATIONS: tuple[MigrationDescriptor, ...] = (
    m202203191_drop_diagnostics_user.migration,
    m20221016_drop_rank_column.migration,
)


def register_migrations(
    registry: MigrationRegistry,
    migrations: tuple[MigrationDescriptor, ...] | list[MigrationDescriptor] = MIGRATIONS,
) -> MigrationRegistry:
    """Register *migrations* in lexicographic name order.

    Raises:
        DuplicateMigrationError: If two migrations share a name
    """
    for descriptor in sorted(migrations, key=lambda d: d.name):
        if descriptor.phase is Phase.PRE:
            registry.register_pre(descriptor)
        else:
            registry.register_post(descriptor)
    return registry


def build_registry(
    migrations: tuple[MigrationDescriptor, ...] | list[MigrationDescriptor] = MIGRATIONS,
) -> MigrationRegistry:
    """A new registry holding *migrations*."""
    return register_migrations(MigrationRegistry(), migrations)


__all__ = ["MIGRATIONS", "register_migrations", "build_registry"]
