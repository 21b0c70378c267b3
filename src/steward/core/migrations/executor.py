"""Execute one migration: ledger check, body, ledger write.

``execute`` is the whole per-migration contract:

1. ``ledger.has_completed(name)`` -> ``SKIPPED``, without building a
   handle, calling the body or touching the introspector.
2. + 3. Call the body.  It evaluates its guards and attempts its
   sub-steps through the ``MigrationHandle``.  An exception escaping the
   body is logged and becomes ``FAILED``.
4. ``ledger.mark_completed(name)``, whatever step 2/3 produced.  A
   migration is attempted at most once; deterministic failures do not
   retry on every restart.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from steward.core.errors import StewardError, categorize_error
from steward.core.logging import get_logger
from steward.core.migrations.handle import MigrationHandle
from steward.core.migrations.introspection import Introspector
from steward.core.migrations.ledger import MigrationLedger
from steward.core.migrations.models import MigrationDescriptor, MigrationResult
from steward.core.settings import StewardSettings

logger = get_logger(__name__)


def execute(
    descriptor: MigrationDescriptor,
    engine: Engine,
    settings: StewardSettings,
    ledger: MigrationLedger,
    introspector: Introspector,
) -> MigrationResult:
    name = descriptor.name

    if ledger.has_completed(name):
        logger.debug("no need to migrate", migration=name)
        return MigrationResult.skipped(name)

    handle = MigrationHandle(name, engine, introspector)
    try:
        result = descriptor.body(handle, settings)
    except Exception as exc:
        error = StewardError(
            "migration failed unexpectedly", category=categorize_error(exc), cause=exc
        ).with_context(migration=name, phase=descriptor.phase.value)
        logger.warning(error.message, **error.to_dict())
        result = MigrationResult.failed(name, str(exc))
    else:
        if result is None:
            result = handle.result() if handle.begun else MigrationResult.noop(name)

    ledger.mark_completed(name)
    return result


__all__ = ["execute"]
