"""Drop the ``rank`` column from ``leaderboard_items``.

Ranks are computed when the leaderboard is rendered; the stored column
went stale and was removed from the entity definition.
"""

from __future__ import annotations

from steward.core.migrations.handle import MigrationHandle
from steward.core.migrations.models import MigrationDescriptor, MigrationResult, Phase
from steward.core.orm.tables import LeaderboardItemTable
from steward.core.settings import StewardSettings

NAME = "20221016-drop_rank_column"


def drop_rank_column(db: MigrationHandle, settings: StewardSettings) -> MigrationResult:
    if not (db.has_table(LeaderboardItemTable) and db.has_column(LeaderboardItemTable, "rank")):
        return db.noop()

    db.begin()
    db.drop_column(LeaderboardItemTable, "rank")
    return db.result()


migration = MigrationDescriptor(
    name=NAME,
    phase=Phase.POST,
    body=drop_rank_column,
    description="Drop leaderboard_items.rank",
)
