"""Schema migration engine.

Applies named, hand-written schema changes (mostly destructive ones the
additive sync cannot do) exactly once per database, around an additive
schema sync, without ever aborting startup.

Modules
-------
models         Phase, MigrationOutcome, MigrationResult, MigrationDescriptor, MigrationRecord
ledger         MigrationLedger - which migrations have completed
introspection  SchemaIntrospector - table/column/constraint existence
handle         MigrationHandle - guards + non-fatal DDL sub-steps for bodies
executor       execute() - ledger check, body, ledger write
registry       MigrationRegistry - ordered pre/post lists, unique names
sync           MetadataSchemaSync - create missing tables/columns
runner         MigrationRunner - pre-phase, sync, post-phase
versions       the concrete migrations + register_migrations()

Tags:
    schema-steward, migrations, schema, database, idempotent, DDL

Doc-Types:
    package-overview
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from steward.core.migrations.executor import execute
from steward.core.migrations.handle import MigrationHandle
from steward.core.migrations.introspection import Introspector, SchemaIntrospector
from steward.core.migrations.ledger import MigrationLedger
from steward.core.migrations.models import (
    MigrationDescriptor,
    MigrationOutcome,
    MigrationRecord,
    MigrationResult,
    Phase,
)
from steward.core.migrations.registry import MigrationRegistry
from steward.core.migrations.runner import MigrationRunner, RunnerState, RunReport
from steward.core.migrations.sync import MetadataSchemaSync, SchemaSync, SyncReport
from steward.core.migrations.versions import build_registry, register_migrations
from steward.core.orm.base import StewardBase
from steward.core.settings import StewardSettings


def run_migrations(engine: Engine, settings: StewardSettings) -> RunReport:
    """Run every known migration around a sync of ``StewardBase.metadata``."""
    runner = MigrationRunner(build_registry(), MetadataSchemaSync(StewardBase.metadata))
    return runner.run(engine, settings)


__all__ = [
    "execute",
    "run_migrations",
    "MigrationHandle",
    "Introspector",
    "SchemaIntrospector",
    "MigrationLedger",
    "MigrationDescriptor",
    "MigrationOutcome",
    "MigrationRecord",
    "MigrationResult",
    "Phase",
    "MigrationRegistry",
    "MigrationRunner",
    "RunnerState",
    "RunReport",
    "MetadataSchemaSync",
    "SchemaSync",
    "SyncReport",
    "build_registry",
    "register_migrations",
]
