"""Drop the ``user_id`` column (and its foreign key) from ``diagnostics``.

Diagnostics used to be linked to the reporting user.  Databases created
before the link was removed still carry the column and the
``fk_diagnostics_user`` constraint.  The constraint is dropped first and
its failure does not stop the column drop: some dialects drop dependent
constraints together with the column, others name the constraint
differently.
"""

from __future__ import annotations

from steward.core.migrations.handle import MigrationHandle
from steward.core.migrations.models import MigrationDescriptor, MigrationResult, Phase
from steward.core.orm.tables import DiagnosticsTable
from steward.core.settings import StewardSettings

NAME = "202203191-drop_diagnostics_user"


def drop_diagnostics_user(db: MigrationHandle, settings: StewardSettings) -> MigrationResult:
    if not db.has_column(DiagnosticsTable, "user_id"):
        return db.noop()

    db.begin()
    db.drop_constraint(DiagnosticsTable, "fk_diagnostics_user", type_="foreignkey")
    db.drop_column(DiagnosticsTable, "user_id")
    return db.result()


migration = MigrationDescriptor(
    name=NAME,
    phase=Phase.POST,
    body=drop_diagnostics_user,
    description="Drop diagnostics.user_id and fk_diagnostics_user",
)
