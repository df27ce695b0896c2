"""Gameplay settings shared by the queue manager and the match coordinator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from connect4.server.settings import ArenaServerSettings

DEFAULT_MAX_QUEUE_SIZE = 25
DEFAULT_INACTIVITY_TIMEOUT_SECONDS = 60.0
DEFAULT_POINTS_PER_WIN = 10


class MatchSettings(BaseModel):
    """
    Tunables for matchmaking and live sessions.

    Defaults mirror the production configuration; tests shrink the timeouts.
    """

    model_config = ConfigDict(frozen=True)

    max_queue_size: int = Field(default=DEFAULT_MAX_QUEUE_SIZE, ge=1)
    inactivity_timeout_seconds: float = Field(default=DEFAULT_INACTIVITY_TIMEOUT_SECONDS, gt=0)
    points_per_win: int = Field(default=DEFAULT_POINTS_PER_WIN, ge=0)
    bot_think_seconds: float = Field(default=0.6, ge=0)
    leaderboard_size: int = Field(default=10, ge=1, le=100)
    history_size: int = Field(default=20, ge=1, le=200)

    @classmethod
    def from_server_settings(cls, settings: ArenaServerSettings) -> MatchSettings:
        """Build MatchSettings from the server environment configuration."""
        return cls(
            max_queue_size=settings.max_queue_size,
            inactivity_timeout_seconds=settings.inactivity_timeout_seconds,
            points_per_win=settings.points_per_win,
            bot_think_seconds=settings.bot_think_seconds,
            leaderboard_size=settings.leaderboard_size,
            history_size=settings.history_size,
        )
