"""SQLite-backed player stats repository."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from shared.dal.models import PlayerStats
from shared.dal.stats_repository import StatsRepository

if TYPE_CHECKING:
    from shared.db.connection import Database

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = "id, display_name, avatar, wins, losses, points"


def _row_to_stats(row: tuple) -> PlayerStats:
    return PlayerStats(
        user_id=row[0],
        display_name=row[1],
        avatar=row[2],
        wins=row[3],
        losses=row[4],
        points=row[5],
    )


class SqliteStatsRepository(StatsRepository):
    """SQLite implementation of StatsRepository.

    Increments are a single INSERT ... ON CONFLICT DO UPDATE, so concurrent
    finalizations never lose an update. A non-empty display name or avatar
    refreshes the stored one.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def increment_stats(
        self,
        user_id: str,
        *,
        wins: int = 0,
        losses: int = 0,
        points: int = 0,
        display_name: str = "",
        avatar: str = "",
    ) -> None:
        async with self._lock:
            self._db.connection.execute(
                "INSERT INTO player_stats (id, display_name, avatar, wins, losses, points, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET "
                "wins = wins + excluded.wins, "
                "losses = losses + excluded.losses, "
                "points = points + excluded.points, "
                "display_name = CASE WHEN excluded.display_name != '' "
                "  THEN excluded.display_name ELSE display_name END, "
                "avatar = CASE WHEN excluded.avatar != '' THEN excluded.avatar ELSE avatar END, "
                "updated_at = excluded.updated_at",
                (user_id, display_name, avatar, wins, losses, points, datetime.now(UTC).isoformat()),
            )
            self._db.connection.commit()
        logger.debug("stats incremented for %s: +%d wins, +%d losses, +%d points", user_id, wins, losses, points)

    async def get_stats(self, user_id: str) -> PlayerStats | None:
        row = self._db.connection.execute(
            f"SELECT {_SELECT_COLUMNS} FROM player_stats WHERE id = ?",  # noqa: S608
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return _row_to_stats(row)

    async def find_top_by_points(self, limit: int = 10) -> list[PlayerStats]:
        """Highest points first; ties broken by more wins, then by user id."""
        rows = self._db.connection.execute(
            f"SELECT {_SELECT_COLUMNS} FROM player_stats "  # noqa: S608
            "ORDER BY points DESC, wins DESC, id ASC LIMIT ?",
            (limit,),
        ).fetchall()
        return [_row_to_stats(row) for row in rows]
