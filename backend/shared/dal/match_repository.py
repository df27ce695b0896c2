"""Abstract interface for match history persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from shared.dal.models import MatchRecord


class MatchRepository(ABC):
    """Abstract interface for match history persistence."""

    @abstractmethod
    async def create_match(self, record: MatchRecord) -> str:
        """Store a new record and return its record id."""
        ...

    @abstractmethod
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
        """Complete a record. Records that are already finished are left untouched."""
        ...

    @abstractmethod
    async def get_match(self, record_id: str) -> MatchRecord | None: ...

    @abstractmethod
    async def get_matches_for_participant(self, participant_id: str, limit: int = 20) -> list[MatchRecord]: ...

    @abstractmethod
    async def get_recent_matches(self, limit: int = 20) -> list[MatchRecord]: ...
