"""Typed domain exceptions for queue and match rule violations.

Every rejection a participant can trigger is a subclass of GameRuleError.
Each class carries a RejectionCode and a short human-readable message so
the message router can answer the requester without exposing internals.
Anything that is not a GameRuleError is treated as an unexpected failure.
"""

from connect4.logic.enums import RejectionCode


class GameRuleError(Exception):
    """Base exception for rejected participant input."""

    code: RejectionCode
    default_message: str = "Request rejected"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MoveRejectedError(GameRuleError):
    """A submitted move cannot be applied to the session board."""


class NotYourTurnError(MoveRejectedError):
    code = RejectionCode.NOT_YOUR_TURN
    default_message = "It is not your turn"


class InvalidColumnError(MoveRejectedError):
    code = RejectionCode.INVALID_COLUMN
    default_message = "Column is out of range"


class ColumnFullError(MoveRejectedError):
    code = RejectionCode.COLUMN_FULL
    default_message = "Column is full"


class SessionNotFoundError(GameRuleError):
    code = RejectionCode.SESSION_NOT_FOUND
    default_message = "Match not found or already finished"


class NotInSessionError(GameRuleError):
    code = RejectionCode.NOT_IN_SESSION
    default_message = "You are not playing in this match"


class QueueRejectedError(GameRuleError):
    """A queue or session admission request was refused."""


class AlreadyQueuedError(QueueRejectedError):
    code = RejectionCode.ALREADY_QUEUED
    default_message = "You are already in the queue"


class AlreadyInSessionError(QueueRejectedError):
    code = RejectionCode.ALREADY_IN_SESSION
    default_message = "You are already playing a match"


class QueueFullError(QueueRejectedError):
    code = RejectionCode.QUEUE_FULL
    default_message = "The queue is full, try again later"
