"""Read-only views of queue, session and presence state.

These are what HTTP handlers, admin telemetry and outbound messages carry,
so none of them hold references to live mutable state.
"""

from pydantic import BaseModel

from connect4.logic.enums import Difficulty, PresenceState, QueueEntryState, SessionMode


class ParticipantView(BaseModel):
    participant_id: str
    display_name: str
    avatar: str = ""


class QueueEntryView(BaseModel):
    position: int  # 1-based
    participant_id: str
    display_name: str
    avatar: str = ""
    status: QueueEntryState


class QueueSnapshot(BaseModel):
    entries: list[QueueEntryView]
    queue_size: int
    max_size: int


class RosterView(BaseModel):
    """The participants currently holding the pairing slot."""

    player1: ParticipantView | None = None
    player2: ParticipantView | None = None


class SessionSummary(BaseModel):
    session_id: str
    mode: SessionMode
    participant_a: ParticipantView
    participant_b: ParticipantView
    turn_holder: str
    move_count: int
    difficulty: Difficulty | None = None
    started_at: str


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    display_name: str
    avatar: str = ""
    wins: int
    losses: int
    points: int


class PresenceRow(BaseModel):
    participant_id: str
    display_name: str
    is_admin: bool = False
    connected_seconds: float
    idle_seconds: float
    state: PresenceState


class TelemetryCounts(BaseModel):
    connected: int
    active: int
    inactive: int
    waiting: int
    active_sessions: int


class TelemetrySnapshot(BaseModel):
    counts: TelemetryCounts
    users: list[PresenceRow]
    queue: list[QueueEntryView]
    roster: RosterView
    sessions: list[SessionSummary]
    generated_at: str
