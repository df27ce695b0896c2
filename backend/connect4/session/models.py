import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

from connect4.logic.board import Board, Token, new_board
from connect4.logic.enums import Difficulty, FinishReason, QueueEntryState, SessionMode, SessionStatus

BOT_ID = "bot"


@dataclass(frozen=True)
class Participant:
    """Identity of a connected user, taken from a verified participant ticket."""

    participant_id: str
    display_name: str
    avatar: str = ""
    is_admin: bool = False

    @property
    def is_bot(self) -> bool:
        return self.participant_id == BOT_ID


BOT_PARTICIPANT = Participant(participant_id=BOT_ID, display_name="Bot")


@dataclass
class QueueEntry:
    """A participant's place in the waiting line or the paired roster.

    Lifecycle: created as WAITING on join, switched to PAIRED when popped
    into the roster, dropped on leave, release or inactivity eviction.
    """

    participant: Participant
    joined_at: float  # time.monotonic() timestamp
    last_activity: float
    state: QueueEntryState = QueueEntryState.WAITING

    @property
    def participant_id(self) -> str:
        return self.participant.participant_id


@dataclass(frozen=True)
class Move:
    participant_id: str
    row: int
    column: int


@dataclass(frozen=True)
class Outcome:
    """Terminal result of a session. winner_id is None for draws and aborted sessions."""

    reason: FinishReason
    winner_id: str | None = None
    draw: bool = False


@dataclass
class MatchSession:
    """Live state of one match.

    Participant A always holds Token.A and moves first. All mutation of
    board, turn_holder and status happens under `lock`.
    """

    session_id: str
    participant_a: Participant
    participant_b: Participant
    mode: SessionMode
    difficulty: Difficulty | None = None
    board: Board = field(default_factory=new_board)
    turn_holder: str = ""
    status: SessionStatus = SessionStatus.ACTIVE
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None
    last_move: Move | None = None
    move_count: int = 0
    outcome: Outcome | None = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.turn_holder:
            self.turn_holder = self.participant_a.participant_id

    @property
    def participants(self) -> tuple[Participant, Participant]:
        return (self.participant_a, self.participant_b)

    @property
    def participant_ids(self) -> list[str]:
        return [p.participant_id for p in self.participants]

    @property
    def humans(self) -> list[Participant]:
        return [p for p in self.participants if not p.is_bot]

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def is_bot_turn(self) -> bool:
        return self.mode == SessionMode.HUMAN_VS_BOT and self.turn_holder == BOT_ID

    def involves(self, participant_id: str) -> bool:
        return participant_id in self.participant_ids

    def other(self, participant_id: str) -> Participant:
        """Return the opponent of the given participant."""
        if participant_id == self.participant_a.participant_id:
            return self.participant_b
        if participant_id == self.participant_b.participant_id:
            return self.participant_a
        raise ValueError(f"{participant_id} is not part of session {self.session_id}")

    def token_for(self, participant_id: str) -> Token:
        if participant_id == self.participant_a.participant_id:
            return Token.A
        if participant_id == self.participant_b.participant_id:
            return Token.B
        raise ValueError(f"{participant_id} is not part of session {self.session_id}")
