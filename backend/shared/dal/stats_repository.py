"""Abstract interface for per-user score persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shared.dal.models import PlayerStats


class StatsRepository(ABC):
    """Abstract interface for per-user score persistence.

    Implementations must apply `increment_stats` as one atomic upsert.
    """

    @abstractmethod
    async def increment_stats(
        self,
        user_id: str,
        *,
        wins: int = 0,
        losses: int = 0,
        points: int = 0,
        display_name: str = "",
        avatar: str = "",
    ) -> None: ...

    @abstractmethod
    async def get_stats(self, user_id: str) -> PlayerStats | None: ...

    @abstractmethod
    async def find_top_by_points(self, limit: int = 10) -> list[PlayerStats]: ...
