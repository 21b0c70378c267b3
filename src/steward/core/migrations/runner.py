"""Migration runner: pre-phase, additive sync, post-phase.

Manifesto:
    A service deployed from many prior schema versions against shared
    databases has to evolve its schema at startup without ever refusing
    to start because of it.  The runner applies every registered
    migration once per database, in a fixed order, and absorbs whatever
    goes wrong into log lines.

Architecture::

    run(engine, settings)
      │
      ├─ settings.skip_migrations? ──► return (registry/ledger untouched)
      │
      ├─ RUNNING_PRE     for m in registry.list_pre():  execute(m)
      ├─ SYNCING_SCHEMA  schema_sync.sync(engine)       exactly once
      ├─ RUNNING_POST    for m in registry.list_post(): execute(m)
      └─ DONE

    IDLE → RUNNING_PRE → SYNCING_SCHEMA → RUNNING_POST → DONE
    strictly linear, entered once per runner.

Guardrails:
    - ``run()`` never raises; failures end up as warnings/errors in the log
    - Single-threaded and synchronous; call it before any listener starts
    - No cross-instance lock: two instances racing on the same database
      may both attempt the same DDL; the loser logs a warning

Tags:
    schema-steward, migrations, runner, startup, idempotent, DDL

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sqlalchemy.engine import Engine

from steward.core.errors import SchemaSyncError, StewardError, categorize_error
from steward.core.logging import LogContext, get_logger
from steward.core.migrations.executor import execute
from steward.core.migrations.introspection import Introspector, SchemaIntrospector
from steward.core.migrations.ledger import MigrationLedger
from steward.core.migrations.models import MigrationDescriptor, MigrationResult, Phase
from steward.core.migrations.registry import MigrationRegistry
from steward.core.migrations.sync import SchemaSync, SyncReport
from steward.core.settings import StewardSettings

logger = get_logger(__name__)


class RunnerState(str, Enum):
    IDLE = "idle"
    RUNNING_PRE = "running_pre"
    SYNCING_SCHEMA = "syncing_schema"
    RUNNING_POST = "running_post"
    DONE = "done"


_NEXT_STATE = {
    RunnerState.IDLE: RunnerState.RUNNING_PRE,
    RunnerState.RUNNING_PRE: RunnerState.SYNCING_SCHEMA,
    RunnerState.SYNCING_SCHEMA: RunnerState.RUNNING_POST,
    RunnerState.RUNNING_POST: RunnerState.DONE,
}


@dataclass
class RunReport:
    """Everything one ``run()`` did, for tests, the CLI and logs."""

    pre: list[MigrationResult] = field(default_factory=list)
    post: list[MigrationResult] = field(default_factory=list)
    sync: SyncReport | None = None
    sync_error: str | None = None
    state: RunnerState = RunnerState.IDLE
    skipped_by_config: bool = False

    @property
    def results(self) -> list[MigrationResult]:
        return [*self.pre, *self.post]

    def result_for(self, name: str) -> MigrationResult | None:
        return next((r for r in self.results if r.name == name), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "skipped_by_config": self.skipped_by_config,
            "pre": [r.to_dict() for r in self.pre],
            "post": [r.to_dict() for r in self.post],
            "sync": self.sync.to_dict() if self.sync else None,
            "sync_error": self.sync_error,
        }


class MigrationRunner:
    """Runs a ``MigrationRegistry`` against one database.

    Parameters
    ----------
    registry
        Registered migrations, already in execution order.
    schema_sync
        The additive sync invoked between the two phases.
    ledger_factory, introspector_factory
        Build the ledger / introspector for the engine passed to ``run``.
        Default to ``MigrationLedger`` and ``SchemaIntrospector``.

    Example::

        runner = MigrationRunner(build_registry(), MetadataSchemaSync(StewardBase.metadata))
        report = runner.run(engine, settings)
    """

    def __init__(
        self,
        registry: MigrationRegistry,
        schema_sync: SchemaSync,
        *,
        ledger_factory: Callable[[Engine], MigrationLedger] = MigrationLedger,
        introspector_factory: Callable[[Engine], Introspector] = SchemaIntrospector,
    ) -> None:
        self._registry = registry
        self._schema_sync = schema_sync
        self._ledger_factory = ledger_factory
        self._introspector_factory = introspector_factory
        self._state = RunnerState.IDLE
        self._report: RunReport | None = None

    @property
    def state(self) -> RunnerState:
        return self._state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, engine: Engine, settings: StewardSettings) -> RunReport:
        """Run the whole migration pass.  Never raises."""
        if self._report is not None:
            logger.warning("migration runner already ran, ignoring", state=self._state.value)
            return self._report

        report = RunReport()
        self._report = report

        if settings.skip_migrations:
            logger.info("skipping migrations")
            report.skipped_by_config = True
            return report

        try:
            ledger = self._ledger_factory(engine)
            introspector = self._introspector_factory(engine)
        except Exception as exc:
            self._log_failure("failed to set up migration runner", exc)
            return report

        self._advance(report)
        report.pre = self._run_phase(Phase.PRE, self._registry.list_pre(), engine, settings, ledger, introspector)

        self._advance(report)
        self._sync(engine, report)

        self._advance(report)
        report.post = self._run_phase(Phase.POST, self._registry.list_post(), engine, settings, ledger, introspector)

        self._advance(report)
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _advance(self, report: RunReport) -> None:
        self._state = _NEXT_STATE[self._state]
        report.state = self._state

    def _run_phase(
        self,
        phase: Phase,
        descriptors: tuple[MigrationDescriptor, ...],
        engine: Engine,
        settings: StewardSettings,
        ledger: MigrationLedger,
        introspector: Introspector,
    ) -> list[MigrationResult]:
        results = []
        with LogContext(phase=phase.value):
            for descriptor in descriptors:
                try:
                    result = execute(descriptor, engine, settings, ledger, introspector)
                except Exception as exc:
                    self._log_failure("migration crashed", exc, migration=descriptor.name)
                    result = MigrationResult.failed(descriptor.name, str(exc))
                self._log_outcome(result)
                results.append(result)
        return results

    def _sync(self, engine: Engine, report: RunReport) -> None:
        try:
            report.sync = self._schema_sync.sync(engine)
        except Exception as exc:
            error = exc if isinstance(exc, SchemaSyncError) else SchemaSyncError("schema sync failed", cause=exc)
            report.sync_error = str(exc)
            logger.error(error.message, **error.to_dict())

    def _log_outcome(self, result: MigrationResult) -> None:
        logger.debug("migration finished", migration=result.name, outcome=result.outcome.value)

    def _log_failure(self, message: str, exc: Exception, **context: Any) -> None:
        error = StewardError(message, category=categorize_error(exc), cause=exc).with_context(**context)
        logger.warning(error.message, **error.to_dict())


__all__ = ["RunnerState", "RunReport", "MigrationRunner"]
