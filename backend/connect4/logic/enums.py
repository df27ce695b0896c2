"""
String enum definitions for match, queue and rejection concepts.
"""

from enum import StrEnum


class SessionMode(StrEnum):
    """Kind of opponent a session is played against."""

    HUMAN_PAIR = "human_pair"
    HUMAN_VS_BOT = "human_vs_bot"


class SessionStatus(StrEnum):
    ACTIVE = "active"
    FINISHED = "finished"


class FinishReason(StrEnum):
    """Why a session reached its terminal state."""

    WIN = "win"
    DRAW = "draw"
    RESIGN = "resign"
    DISCONNECT = "disconnect"
    INACTIVITY = "inactivity"
    ABORTED = "aborted"


class QueueEntryState(StrEnum):
    WAITING = "waiting"
    PAIRED = "paired"


class PresenceState(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RejectionCode(StrEnum):
    """Error codes sent to the requester when an input is rejected."""

    ALREADY_QUEUED = "already_queued"
    ALREADY_IN_SESSION = "already_in_session"
    QUEUE_FULL = "queue_full"
    NOT_QUEUED = "not_queued"
    NOT_YOUR_TURN = "not_your_turn"
    INVALID_COLUMN = "invalid_column"
    COLUMN_FULL = "column_full"
    SESSION_NOT_FOUND = "session_not_found"
    NOT_IN_SESSION = "not_in_session"


class Difficulty(StrEnum):
    """Bot difficulty tiers for practice sessions."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
