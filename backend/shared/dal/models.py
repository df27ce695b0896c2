"""Persistence models for the data access layer."""

from datetime import datetime

from pydantic import BaseModel, Field


class MatchRecord(BaseModel, frozen=True):
    """Historical record of one match, written at start and completed at finish."""

    record_id: str
    session_id: str
    mode: str  # "human_pair" | "human_vs_bot"
    participant_ids: list[str] = Field(default_factory=list)  # [participant A, participant B]
    participant_names: list[str] = Field(default_factory=list)
    difficulty: str | None = None  # bot sessions only
    status: str = "active"  # "active" | "finished"
    winner_id: str | None = None
    draw: bool = False
    end_reason: str | None = None
    final_board: str | None = None  # encode_board() form
    move_count: int = 0
    started_at: datetime
    finished_at: datetime | None = None


class PlayerStats(BaseModel, frozen=True):
    """Cumulative human-pair results for one user."""

    user_id: str
    display_name: str = ""
    avatar: str = ""
    wins: int = 0
    losses: int = 0
    points: int = 0
