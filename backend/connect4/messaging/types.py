from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from connect4.logic.enums import Difficulty, FinishReason, RejectionCode, SessionMode
from connect4.session.types import (
    LeaderboardEntry,
    ParticipantView,
    QueueEntryView,
    TelemetrySnapshot,
)

_SESSION_ID_FIELD = Field(min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")


class ClientMessageType(StrEnum):
    JOIN_QUEUE = "join_queue"
    LEAVE_QUEUE = "leave_queue"
    START_BOT_SESSION = "start_bot_session"
    SUBMIT_MOVE = "submit_move"
    RESIGN = "resign"
    HEARTBEAT = "heartbeat"


class ServerMessageType(StrEnum):
    QUEUE_UPDATED = "queue_updated"
    ROSTER_UPDATED = "roster_updated"
    SESSION_STARTED = "session_started"
    BOARD_UPDATED = "board_updated"
    SESSION_FINISHED = "session_finished"
    MOVE_REJECTED = "move_rejected"
    PARTICIPANT_INACTIVE = "participant_inactive"
    ACTION_RESULT = "action_result"
    HEARTBEAT_ACK = "heartbeat_ack"
    LEADERBOARD_UPDATED = "leaderboard_updated"
    ADMIN_TELEMETRY = "admin_telemetry"
    ERROR = "error"


class ErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    INVALID_TICKET = "invalid_ticket"
    INTERNAL_ERROR = "internal_error"


# --- client -> server ---


class JoinQueueMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_QUEUE] = ClientMessageType.JOIN_QUEUE


class LeaveQueueMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE_QUEUE] = ClientMessageType.LEAVE_QUEUE


class StartBotSessionMessage(BaseModel):
    type: Literal[ClientMessageType.START_BOT_SESSION] = ClientMessageType.START_BOT_SESSION
    difficulty: Difficulty = Difficulty.MEDIUM


class SubmitMoveMessage(BaseModel):
    type: Literal[ClientMessageType.SUBMIT_MOVE] = ClientMessageType.SUBMIT_MOVE
    session_id: str = _SESSION_ID_FIELD
    # range is checked by the board so out-of-range columns get a move_rejected reply
    column: int = Field(strict=True)


class ResignMessage(BaseModel):
    type: Literal[ClientMessageType.RESIGN] = ClientMessageType.RESIGN
    session_id: str = _SESSION_ID_FIELD


class HeartbeatMessage(BaseModel):
    type: Literal[ClientMessageType.HEARTBEAT] = ClientMessageType.HEARTBEAT


ClientMessage = Annotated[
    JoinQueueMessage
    | LeaveQueueMessage
    | StartBotSessionMessage
    | SubmitMoveMessage
    | ResignMessage
    | HeartbeatMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage. Raises pydantic ValidationError."""
    return _client_message_adapter.validate_python(data)


# --- server -> client ---


class MoveView(BaseModel):
    participant_id: str
    row: int
    column: int


class QueueUpdatedMessage(BaseModel):
    type: Literal[ServerMessageType.QUEUE_UPDATED] = ServerMessageType.QUEUE_UPDATED
    entries: list[QueueEntryView]
    queue_size: int
    max_size: int


class RosterUpdatedMessage(BaseModel):
    type: Literal[ServerMessageType.ROSTER_UPDATED] = ServerMessageType.ROSTER_UPDATED
    player1: ParticipantView | None = None
    player2: ParticipantView | None = None


class SessionStartedMessage(BaseModel):
    type: Literal[ServerMessageType.SESSION_STARTED] = ServerMessageType.SESSION_STARTED
    session_id: str
    mode: SessionMode
    token: int  # 1 plays first
    opponent: ParticipantView
    board: list[list[int]]
    turn_holder: str
    difficulty: Difficulty | None = None


class BoardUpdatedMessage(BaseModel):
    type: Literal[ServerMessageType.BOARD_UPDATED] = ServerMessageType.BOARD_UPDATED
    session_id: str
    board: list[list[int]]
    turn_holder: str
    last_move: MoveView
    move_count: int


class SessionFinishedMessage(BaseModel):
    type: Literal[ServerMessageType.SESSION_FINISHED] = ServerMessageType.SESSION_FINISHED
    session_id: str
    winner_id: str | None
    draw: bool
    reason: FinishReason
    board: list[list[int]]


class MoveRejectedMessage(BaseModel):
    type: Literal[ServerMessageType.MOVE_REJECTED] = ServerMessageType.MOVE_REJECTED
    session_id: str | None = None
    code: RejectionCode
    reason: str


class ParticipantInactiveMessage(BaseModel):
    type: Literal[ServerMessageType.PARTICIPANT_INACTIVE] = ServerMessageType.PARTICIPANT_INACTIVE
    participant_id: str
    display_name: str


class ActionResultMessage(BaseModel):
    type: Literal[ServerMessageType.ACTION_RESULT] = ServerMessageType.ACTION_RESULT
    action: ClientMessageType
    success: bool
    message: str = ""
    code: RejectionCode | None = None
    position: int | None = None  # queue position after a successful join


class HeartbeatAckMessage(BaseModel):
    type: Literal[ServerMessageType.HEARTBEAT_ACK] = ServerMessageType.HEARTBEAT_ACK


class LeaderboardUpdatedMessage(BaseModel):
    type: Literal[ServerMessageType.LEADERBOARD_UPDATED] = ServerMessageType.LEADERBOARD_UPDATED
    entries: list[LeaderboardEntry]


class AdminTelemetryMessage(BaseModel):
    type: Literal[ServerMessageType.ADMIN_TELEMETRY] = ServerMessageType.ADMIN_TELEMETRY
    snapshot: TelemetrySnapshot


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: ErrorCode
    message: str
