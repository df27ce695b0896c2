from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from connect4.logic.board import Token, copy_board, drop_token, encode_board, is_full, is_winning_drop
from connect4.logic.bot import BotPlayer
from connect4.logic.enums import Difficulty, FinishReason, SessionMode, SessionStatus
from connect4.logic.exceptions import (
    AlreadyInSessionError,
    AlreadyQueuedError,
    GameRuleError,
    NotInSessionError,
    NotYourTurnError,
    SessionNotFoundError,
)
from connect4.logic.settings import MatchSettings
from connect4.messaging.types import (
    BoardUpdatedMessage,
    LeaderboardUpdatedMessage,
    MoveView,
    ParticipantInactiveMessage,
    SessionFinishedMessage,
    SessionStartedMessage,
)
from connect4.session.broadcast import session_group
from connect4.session.deadlines import DeadlineRegistry
from connect4.session.models import BOT_ID, BOT_PARTICIPANT, MatchSession, Move, Outcome
from connect4.session.queue_manager import QueueManager
from connect4.session.types import LeaderboardEntry, ParticipantView, SessionSummary
from shared.dal.models import MatchRecord

if TYPE_CHECKING:
    import random

    from connect4.session.broadcast import Notifier
    from connect4.session.models import Participant
    from connect4.session.types import QueueSnapshot, RosterView
    from shared.dal.match_repository import MatchRepository
    from shared.dal.stats_repository import StatsRepository

logger = structlog.get_logger()


def _participant_view(participant: Participant) -> ParticipantView:
    return ParticipantView(
        participant_id=participant.participant_id,
        display_name=participant.display_name,
        avatar=participant.avatar,
    )


class MatchCoordinator:
    """Own every live match and the queue that feeds human pairs into it.

    Each session has its own lock; board, turn and status only change while
    it is held. A session is closed in the same critical section that
    decides its outcome, so no other forfeit or move can slip in between.
    Broadcasts, persistence and score updates that follow run outside it.

    Inactivity is tracked in two places: the queue arms deadlines for the
    paired human-pair roster, and the coordinator arms its own deadline for
    the human in a bot session.
    """

    def __init__(
        self,
        notifier: Notifier,
        *,
        match_repository: MatchRepository | None = None,
        stats_repository: StatsRepository | None = None,
        settings: MatchSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._notifier = notifier
        self._match_repository = match_repository
        self._stats_repository = stats_repository
        self._settings = settings or MatchSettings()
        self._rng = rng
        self._sessions: dict[str, MatchSession] = {}  # session_id -> MatchSession
        self._session_by_participant: dict[str, str] = {}  # participant_id -> session_id
        self._bot_tasks: dict[str, asyncio.Task[None]] = {}  # session_id -> pending bot turn
        self._bot_deadlines = DeadlineRegistry(
            self._settings.inactivity_timeout_seconds,
            self._handle_participant_inactive,
        )
        self._queue = QueueManager(
            notifier,
            self._settings,
            is_in_session=self.is_in_session,
            on_pairing_ready=self._handle_pairing_ready,
            on_participant_inactive=self._handle_participant_inactive,
        )

    # --- Accessors ---

    @property
    def settings(self) -> MatchSettings:
        return self._settings

    @property
    def queue(self) -> QueueManager:
        return self._queue

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    def get_session(self, session_id: str) -> MatchSession | None:
        return self._sessions.get(session_id)

    def session_for(self, participant_id: str) -> MatchSession | None:
        session_id = self._session_by_participant.get(participant_id)
        return self._sessions.get(session_id) if session_id is not None else None

    def is_in_session(self, participant_id: str) -> bool:
        return participant_id in self._session_by_participant

    def active_sessions(self) -> list[SessionSummary]:
        return [
            SessionSummary(
                session_id=session.session_id,
                mode=session.mode,
                participant_a=_participant_view(session.participant_a),
                participant_b=_participant_view(session.participant_b),
                turn_holder=session.turn_holder,
                move_count=session.move_count,
                difficulty=session.difficulty,
                started_at=session.started_at.isoformat(),
            )
            for session in self._sessions.values()
        ]

    def queue_snapshot(self) -> QueueSnapshot:
        return self._queue.snapshot()

    def roster(self) -> RosterView:
        return self._queue.roster()

    # --- Queue ---

    async def join_queue(self, participant: Participant) -> int:
        return await self._queue.join(participant)

    async def leave_queue(self, participant_id: str) -> bool:
        return await self._queue.leave(participant_id)

    async def remove_from_queue(self, participant_id: str) -> bool:
        return await self._queue.remove(participant_id)

    async def clear_queue(self) -> int:
        return await self._queue.clear()

    async def _handle_pairing_ready(self, first: Participant, second: Participant) -> None:
        try:
            await self.create_session(first, second, SessionMode.HUMAN_PAIR)
        except GameRuleError as e:
            logger.warning(
                "pairing rejected, releasing slot",
                participant_a=first.participant_id,
                participant_b=second.participant_id,
                error=e.message,
            )
            await self._queue.release_slot([first.participant_id, second.participant_id])

    # --- Session lifecycle ---

    async def create_session(
        self,
        participant_a: Participant,
        participant_b: Participant,
        mode: SessionMode,
        difficulty: Difficulty | None = None,
    ) -> MatchSession:
        """Start a match. Participant A moves first."""
        for participant in (participant_a, participant_b):
            if not participant.is_bot and self.is_in_session(participant.participant_id):
                raise AlreadyInSessionError

        session = MatchSession(
            session_id=uuid4().hex,
            participant_a=participant_a,
            participant_b=participant_b,
            mode=mode,
            difficulty=difficulty,
        )
        self._sessions[session.session_id] = session
        group = session_group(session.session_id)
        for human in session.humans:
            self._session_by_participant[human.participant_id] = session.session_id
            self._notifier.join_group(group, human.participant_id)
            if mode == SessionMode.HUMAN_VS_BOT:
                self._bot_deadlines.arm(human.participant_id)

        logger.info(
            "session started",
            session_id=session.session_id,
            mode=mode,
            participant_a=participant_a.participant_id,
            participant_b=participant_b.participant_id,
            difficulty=difficulty,
        )
        await self._record_session_start(session)

        for human in session.humans:
            await self._notifier.send(
                human.participant_id,
                SessionStartedMessage(
                    session_id=session.session_id,
                    mode=mode,
                    token=session.token_for(human.participant_id),
                    opponent=_participant_view(session.other(human.participant_id)),
                    board=copy_board(session.board),
                    turn_holder=session.turn_holder,
                    difficulty=difficulty,
                ).model_dump(),
            )
        return session

    async def start_bot_session(self, participant: Participant, difficulty: Difficulty) -> MatchSession:
        """Start a practice match against the bot, bypassing the queue."""
        participant_id = participant.participant_id
        if self.is_in_session(participant_id) or self._queue.is_paired(participant_id):
            raise AlreadyInSessionError
        if self._queue.is_waiting(participant_id):
            raise AlreadyQueuedError
        return await self.create_session(participant, BOT_PARTICIPANT, SessionMode.HUMAN_VS_BOT, difficulty)

    def _get_active_session(self, session_id: str, participant_id: str) -> MatchSession:
        session = self._sessions.get(session_id)
        if session is None or not session.is_active:
            raise SessionNotFoundError
        if not session.involves(participant_id):
            raise NotInSessionError
        return session

    async def apply_move(self, session_id: str, participant_id: str, column: int) -> Move:
        """Drop the participant's token into a column.

        Raises SessionNotFoundError, NotInSessionError, NotYourTurnError,
        InvalidColumnError or ColumnFullError; a rejected move leaves the
        session untouched.
        """
        session = self._get_active_session(session_id, participant_id)
        async with session.lock:
            move, outcome = self._commit_move(session, participant_id, column)
            if outcome is not None:
                self._close_session(session, outcome)
            await self._broadcast_board(session, move)

        if outcome is not None:
            await self._announce_finish(session, outcome)
            return move
        self.renew_activity(participant_id)
        if session.is_bot_turn:
            self._schedule_bot_turn(session)
        return move

    def _commit_move(self, session: MatchSession, participant_id: str, column: int) -> tuple[Move, Outcome | None]:
        """Validate and apply one move. Caller must hold session.lock."""
        if not session.is_active:
            raise SessionNotFoundError
        if session.turn_holder != participant_id:
            raise NotYourTurnError

        token = session.token_for(participant_id)
        scratch = copy_board(session.board)
        row = drop_token(scratch, column, token)

        session.board = scratch
        move = Move(participant_id=participant_id, row=row, column=column)
        session.last_move = move
        session.move_count += 1
        session.turn_holder = session.other(participant_id).participant_id

        if is_winning_drop(scratch, row, column, token):
            return move, Outcome(reason=FinishReason.WIN, winner_id=participant_id)
        if is_full(scratch):
            return move, Outcome(reason=FinishReason.DRAW, draw=True)
        return move, None

    async def _broadcast_board(self, session: MatchSession, move: Move) -> None:
        await self._notifier.send_to_group(
            session_group(session.session_id),
            BoardUpdatedMessage(
                session_id=session.session_id,
                board=copy_board(session.board),
                turn_holder=session.turn_holder,
                last_move=MoveView(participant_id=move.participant_id, row=move.row, column=move.column),
                move_count=session.move_count,
            ).model_dump(),
        )

    async def resign(self, session_id: str, participant_id: str) -> bool:
        session = self._get_active_session(session_id, participant_id)
        winner_id = session.other(participant_id).participant_id
        return await self.finalize(session, Outcome(reason=FinishReason.RESIGN, winner_id=winner_id))

    async def handle_disconnect(self, participant_id: str) -> None:
        """Drop a vanished participant from the queue and forfeit their session."""
        await self._queue.discard(participant_id)
        await self._forfeit(participant_id, FinishReason.DISCONNECT)

    async def _handle_participant_inactive(self, participant_id: str) -> None:
        session = self.session_for(participant_id)
        if session is not None and session.mode == SessionMode.HUMAN_VS_BOT:
            # the queue announces its own evictions; bot sessions are announced here
            await self._notifier.send_to_group(
                session_group(session.session_id),
                ParticipantInactiveMessage(
                    participant_id=participant_id,
                    display_name=next(h.display_name for h in session.humans if h.participant_id == participant_id),
                ).model_dump(),
            )
        if await self._forfeit(participant_id, FinishReason.INACTIVITY):
            return
        # pairing never produced a session; don't leave the slot held forever
        stale = [pid for pid in self._queue.roster_ids if not self.is_in_session(pid)]
        if stale:
            await self._queue.release_slot(stale)

    async def _forfeit(self, participant_id: str, reason: FinishReason) -> bool:
        session = self.session_for(participant_id)
        if session is None:
            return False
        logger.info("participant forfeits", session_id=session.session_id, participant_id=participant_id, reason=reason)
        winner_id = session.other(participant_id).participant_id
        return await self.finalize(session, Outcome(reason=reason, winner_id=winner_id))

    def renew_activity(self, participant_id: str) -> bool:
        """Restart whichever inactivity deadline covers the participant."""
        return self._queue.renew_activity(participant_id) or self._bot_deadlines.renew(participant_id)

    async def finalize(self, session: MatchSession, outcome: Outcome) -> bool:
        """Close a session with the given outcome.

        Only the first call for a session has any effect; later calls
        return False. Must not be called while holding session.lock.
        """
        if not session.is_active:
            return False
        async with session.lock:
            if not session.is_active:
                return False
            self._close_session(session, outcome)
        await self._announce_finish(session, outcome)
        return True

    def _close_session(self, session: MatchSession, outcome: Outcome) -> None:
        """Mark the session finished and stop every timer for it. Caller must hold session.lock."""
        session.status = SessionStatus.FINISHED
        session.finished_at = datetime.now(UTC)
        session.outcome = outcome
        self._sessions.pop(session.session_id, None)
        for participant_id in session.participant_ids:
            if self._session_by_participant.get(participant_id) == session.session_id:
                del self._session_by_participant[participant_id]
            self._bot_deadlines.cancel(participant_id)
        self._queue.cancel_deadlines(session.participant_ids)
        self._cancel_bot_task(session.session_id)

    async def _announce_finish(self, session: MatchSession, outcome: Outcome) -> None:
        logger.info(
            "session finished",
            session_id=session.session_id,
            winner_id=outcome.winner_id,
            draw=outcome.draw,
            reason=outcome.reason,
            moves=session.move_count,
        )

        group = session_group(session.session_id)
        await self._notifier.send_to_group(
            group,
            SessionFinishedMessage(
                session_id=session.session_id,
                winner_id=outcome.winner_id,
                draw=outcome.draw,
                reason=outcome.reason,
                board=copy_board(session.board),
            ).model_dump(),
        )
        for human in session.humans:
            self._notifier.leave_group(group, human.participant_id)

        await self._record_session_finish(session, outcome)

        if session.mode == SessionMode.HUMAN_PAIR:
            await self._apply_score_updates(session, outcome)
            await self._publish_leaderboard()
            await self._queue.release_slot(session.participant_ids)

    # --- Bot turns ---

    def _schedule_bot_turn(self, session: MatchSession) -> None:
        existing = self._bot_tasks.get(session.session_id)
        if existing is not None and not existing.done():
            return
        self._bot_tasks[session.session_id] = asyncio.create_task(self._run_bot_turn(session))

    def _cancel_bot_task(self, session_id: str) -> None:
        task = self._bot_tasks.pop(session_id, None)
        # the bot task may be the one finalizing
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _run_bot_turn(self, session: MatchSession) -> None:
        try:
            await asyncio.sleep(self._settings.bot_think_seconds)
            if not session.is_active or not session.is_bot_turn:
                return
            player = BotPlayer(session.difficulty or Difficulty.MEDIUM, token=Token.B, rng=self._rng)
            column = await asyncio.to_thread(player.choose_move, copy_board(session.board))
            if column is None:
                await self.finalize(session, Outcome(reason=FinishReason.DRAW, draw=True))
                return
            await self._apply_bot_move(session, column)
        except Exception:
            logger.exception("bot turn failed", session_id=session.session_id)
            await self.finalize(session, Outcome(reason=FinishReason.ABORTED))
        finally:
            if self._bot_tasks.get(session.session_id) is asyncio.current_task():
                del self._bot_tasks[session.session_id]

    async def _apply_bot_move(self, session: MatchSession, column: int) -> None:
        async with session.lock:
            if not session.is_active or not session.is_bot_turn:
                return
            move, outcome = self._commit_move(session, BOT_ID, column)
            if outcome is not None:
                self._close_session(session, outcome)
            await self._broadcast_board(session, move)
        if outcome is not None:
            await self._announce_finish(session, outcome)

    # --- Persistence ---

    async def _record_session_start(self, session: MatchSession) -> None:
        """Best-effort persist of the initial match record."""
        if self._match_repository is None:
            return
        record = MatchRecord(
            record_id=session.session_id,
            session_id=session.session_id,
            mode=session.mode.value,
            participant_ids=session.participant_ids,
            participant_names=[p.display_name for p in session.participants],
            difficulty=session.difficulty.value if session.difficulty else None,
            started_at=session.started_at,
        )
        try:
            await self._match_repository.create_match(record)
        except Exception:
            logger.exception("failed to persist match start", session_id=session.session_id)

    async def _record_session_finish(self, session: MatchSession, outcome: Outcome) -> None:
        """Best-effort persist of the final board and outcome."""
        if self._match_repository is None:
            return
        try:
            await self._match_repository.finish_match(
                session.session_id,
                winner_id=outcome.winner_id,
                draw=outcome.draw,
                end_reason=outcome.reason.value,
                final_board=encode_board(session.board),
                finished_at=session.finished_at or datetime.now(UTC),
                move_count=session.move_count,
            )
        except Exception:
            logger.exception("failed to persist match finish", session_id=session.session_id)

    async def _apply_score_updates(self, session: MatchSession, outcome: Outcome) -> None:
        if self._stats_repository is None or outcome.winner_id is None:
            return
        winner = next(p for p in session.participants if p.participant_id == outcome.winner_id)
        loser = session.other(outcome.winner_id)
        try:
            await self._stats_repository.increment_stats(
                winner.participant_id,
                wins=1,
                points=self._settings.points_per_win,
                display_name=winner.display_name,
                avatar=winner.avatar,
            )
        except Exception:
            logger.exception("failed to record win", participant_id=winner.participant_id)
        try:
            await self._stats_repository.increment_stats(
                loser.participant_id,
                losses=1,
                display_name=loser.display_name,
                avatar=loser.avatar,
            )
        except Exception:
            logger.exception("failed to record loss", participant_id=loser.participant_id)

    async def leaderboard(self) -> list[LeaderboardEntry]:
        if self._stats_repository is None:
            return []
        try:
            top = await self._stats_repository.find_top_by_points(self._settings.leaderboard_size)
        except Exception:
            logger.exception("failed to load leaderboard")
            return []
        return [
            LeaderboardEntry(
                rank=index + 1,
                user_id=stats.user_id,
                display_name=stats.display_name,
                avatar=stats.avatar,
                wins=stats.wins,
                losses=stats.losses,
                points=stats.points,
            )
            for index, stats in enumerate(top)
        ]

    async def _publish_leaderboard(self) -> None:
        entries = await self.leaderboard()
        await self._notifier.broadcast(LeaderboardUpdatedMessage(entries=entries).model_dump())

    async def match_history(self, participant_id: str) -> list[MatchRecord]:
        if self._match_repository is None:
            return []
        return await self._match_repository.get_matches_for_participant(participant_id, self._settings.history_size)

    # --- Shutdown ---

    def shutdown(self) -> None:
        """Cancel every pending deadline and bot turn."""
        self._queue.shutdown()
        self._bot_deadlines.cancel_all()
        for session_id in list(self._bot_tasks):
            self._cancel_bot_task(session_id)
