"""SQLite-backed match repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.dal.match_repository import MatchRepository
from shared.dal.models import MatchRecord

if TYPE_CHECKING:
    from datetime import datetime

    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteMatchRepository(MatchRepository):
    """SQLite implementation of MatchRepository.

    Stores full match records as JSON with indexed columns for queries.
    Uses json_each for participant-based lookups.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_match(self, record: MatchRecord) -> str:
        """Insert a match record. Logs a warning and returns on duplicate record_id."""
        async with self._lock:
            try:
                self._db.connection.execute(
                    "INSERT INTO matches (id, session_id, status, started_at, finished_at, end_reason, data) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.record_id,
                        record.session_id,
                        record.status,
                        record.started_at.isoformat(),
                        record.finished_at.isoformat() if record.finished_at else None,
                        record.end_reason,
                        record.model_dump_json(),
                    ),
                )
                self._db.connection.commit()
            except sqlite3.IntegrityError:
                self._db.connection.rollback()
                logger.warning("match already exists, ignoring duplicate create", record_id=record.record_id)
        return record.record_id

    async def finish_match(
        self,
        record_id: str,
        *,
        winner_id: str | None,
        draw: bool,
        end_reason: str,
        final_board: str,
        finished_at: datetime,
        move_count: int = 0,
    ) -> None:
        """Write the outcome. Only updates records that have not already finished."""
        async with self._lock:
            finished_at_iso = finished_at.isoformat()
            cursor = self._db.connection.execute(
                "UPDATE matches SET "
                "status = 'finished', "
                "finished_at = ?, "
                "end_reason = ?, "
                "data = json_set(data, "
                "  '$.status', 'finished', "
                "  '$.winner_id', ?, "
                "  '$.draw', json(?), "
                "  '$.end_reason', ?, "
                "  '$.final_board', ?, "
                "  '$.move_count', ?, "
                "  '$.finished_at', ? "
                ") "
                "WHERE id = ? AND status != 'finished'",
                (
                    finished_at_iso,
                    end_reason,
                    winner_id,
                    json.dumps(draw),
                    end_reason,
                    final_board,
                    move_count,
                    finished_at_iso,
                    record_id,
                ),
            )
            self._db.connection.commit()
            if cursor.rowcount == 0:
                logger.warning("finish_match had no effect (not found or already finished)", record_id=record_id)

    async def get_match(self, record_id: str) -> MatchRecord | None:
        row = self._db.connection.execute(
            "SELECT data FROM matches WHERE id = ?",
            (record_id,),
        ).fetchone()
        if row is None:
            return None
        return MatchRecord.model_validate(json.loads(row[0]))

    async def get_matches_for_participant(self, participant_id: str, limit: int = 20) -> list[MatchRecord]:
        """Most recent matches the participant played in, newest first."""
        rows = self._db.connection.execute(
            "SELECT data FROM matches "
            "WHERE EXISTS (SELECT 1 FROM json_each(matches.data, '$.participant_ids') WHERE value = ?) "
            "ORDER BY started_at DESC LIMIT ?",
            (participant_id, limit),
        ).fetchall()
        return [MatchRecord.model_validate(json.loads(row[0])) for row in rows]

    async def get_recent_matches(self, limit: int = 20) -> list[MatchRecord]:
        rows = self._db.connection.execute(
            "SELECT data FROM matches ORDER BY started_at DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [MatchRecord.model_validate(json.loads(row[0])) for row in rows]
