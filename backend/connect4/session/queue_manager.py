"""Matchmaking queue: FIFO waiting line feeding a single pairing slot."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from connect4.logic.enums import QueueEntryState
from connect4.logic.exceptions import AlreadyInSessionError, AlreadyQueuedError, QueueFullError
from connect4.messaging.types import ParticipantInactiveMessage, QueueUpdatedMessage, RosterUpdatedMessage
from connect4.session.deadlines import DeadlineRegistry
from connect4.session.models import QueueEntry
from connect4.session.types import ParticipantView, QueueEntryView, QueueSnapshot, RosterView

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine

    from connect4.logic.settings import MatchSettings
    from connect4.session.broadcast import Notifier
    from connect4.session.models import Participant

logger = logging.getLogger(__name__)

PAIR_SIZE = 2


class QueueManager:
    """Own the waiting line and the paired roster.

    Entrants wait in arrival order. While the pairing slot is free, the two
    oldest entrants are moved into the roster and handed to the coordinator
    through `on_pairing_ready`. The slot stays occupied until the
    coordinator calls `release_slot` after that session finalizes.

    Paired participants carry an inactivity deadline; expiry evicts them and
    reports them through `on_participant_inactive`.
    """

    def __init__(
        self,
        notifier: Notifier,
        settings: MatchSettings,
        *,
        is_in_session: Callable[[str], bool],
        on_pairing_ready: Callable[[Participant, Participant], Coroutine[Any, Any, None]],
        on_participant_inactive: Callable[[str], Coroutine[Any, Any, None]],
    ) -> None:
        self._notifier = notifier
        self._settings = settings
        self._is_in_session = is_in_session
        self._on_pairing_ready = on_pairing_ready
        self._on_participant_inactive = on_participant_inactive
        self._waiting: list[QueueEntry] = []
        self._roster: list[QueueEntry] = []
        self._pairing_in_flight = False
        self._deadlines = DeadlineRegistry(settings.inactivity_timeout_seconds, self._handle_deadline_expired)

    # --- Public API ---

    @property
    def waiting_count(self) -> int:
        return len(self._waiting)

    @property
    def max_size(self) -> int:
        return self._settings.max_queue_size

    def is_waiting(self, participant_id: str) -> bool:
        return any(e.participant_id == participant_id for e in self._waiting)

    def is_paired(self, participant_id: str) -> bool:
        return any(e.participant_id == participant_id for e in self._roster)

    def position_of(self, participant_id: str) -> int | None:
        """1-based position in the waiting line, or None when not waiting."""
        for index, entry in enumerate(self._waiting):
            if entry.participant_id == participant_id:
                return index + 1
        return None

    @property
    def roster_ids(self) -> list[str]:
        return [e.participant_id for e in self._roster]

    def deadline_remaining(self, participant_id: str) -> float | None:
        return self._deadlines.remaining(participant_id)

    async def join(self, participant: Participant) -> int:
        """Append a participant to the waiting line and return their 1-based position.

        Raises AlreadyQueuedError, AlreadyInSessionError or QueueFullError.
        """
        participant_id = participant.participant_id
        if self.is_waiting(participant_id):
            raise AlreadyQueuedError
        if self.is_paired(participant_id) or self._is_in_session(participant_id):
            raise AlreadyInSessionError
        if len(self._waiting) >= self._settings.max_queue_size:
            raise QueueFullError

        now = time.monotonic()
        self._waiting.append(QueueEntry(participant=participant, joined_at=now, last_activity=now))
        position = len(self._waiting)
        logger.info("participant %s joined queue at position %d", participant_id, position)

        await self._broadcast_state()
        await self._try_pairing()
        return position

    async def leave(self, participant_id: str) -> bool:
        """Remove a waiting entry. Returns False if the participant was not waiting."""
        if not self._remove_waiting(participant_id):
            return False
        self._deadlines.cancel(participant_id)
        logger.info("participant %s left queue", participant_id)
        await self._broadcast_state()
        return True

    async def remove(self, participant_id: str) -> bool:
        """Admin removal of a waiting entrant."""
        removed = await self.leave(participant_id)
        if removed:
            logger.info("admin removed %s from queue", participant_id)
        return removed

    async def clear(self) -> int:
        """Drop every waiting entrant. The paired roster is left alone."""
        count = len(self._waiting)
        for entry in self._waiting:
            self._deadlines.cancel(entry.participant_id)
        self._waiting.clear()
        logger.info("queue cleared, %d entrants removed", count)
        await self._broadcast_state()
        return count

    async def discard(self, participant_id: str) -> None:
        """Silently drop a disconnected participant from the waiting line."""
        if self._remove_waiting(participant_id):
            logger.info("discarded disconnected participant %s from queue", participant_id)
            await self._broadcast_state()

    def renew_activity(self, participant_id: str) -> bool:
        """Restart the inactivity deadline of a paired participant."""
        for entry in self._roster:
            if entry.participant_id == participant_id:
                entry.last_activity = time.monotonic()
                return self._deadlines.renew(participant_id)
        return False

    def cancel_deadlines(self, participant_ids: list[str]) -> None:
        """Stop inactivity tracking for participants whose session has ended."""
        for participant_id in participant_ids:
            self._deadlines.cancel(participant_id)

    async def release_slot(self, participant_ids: list[str]) -> None:
        """Free the roster after a human-pair session finalizes, then pair again."""
        self.cancel_deadlines(participant_ids)
        before = len(self._roster)
        self._roster = [e for e in self._roster if e.participant_id not in participant_ids]
        logger.info("pairing slot released (%d -> %d held)", before, len(self._roster))
        await self._broadcast_state()
        await self._try_pairing()

    def snapshot(self) -> QueueSnapshot:
        return QueueSnapshot(
            entries=[
                QueueEntryView(
                    position=index + 1,
                    participant_id=entry.participant_id,
                    display_name=entry.participant.display_name,
                    avatar=entry.participant.avatar,
                    status=entry.state,
                )
                for index, entry in enumerate(self._waiting)
            ],
            queue_size=len(self._waiting),
            max_size=self._settings.max_queue_size,
        )

    def roster(self) -> RosterView:
        views = [
            ParticipantView(
                participant_id=entry.participant_id,
                display_name=entry.participant.display_name,
                avatar=entry.participant.avatar,
            )
            for entry in self._roster
        ]
        return RosterView(
            player1=views[0] if len(views) > 0 else None,
            player2=views[1] if len(views) > 1 else None,
        )

    def shutdown(self) -> None:
        self._deadlines.cancel_all()

    # --- Pairing ---

    def _can_pair(self) -> bool:
        # a partially vacated roster still belongs to its session until release_slot
        return not self._roster and len(self._waiting) >= PAIR_SIZE

    async def _try_pairing(self) -> None:
        """Pair the oldest entrants while the slot is free.

        Nested calls (a hook that re-enters the queue) return immediately;
        the outermost call keeps looping until no further pairing is possible.
        """
        if self._pairing_in_flight:
            return
        self._pairing_in_flight = True
        try:
            while self._can_pair():
                paired = self._waiting[:PAIR_SIZE]
                del self._waiting[:PAIR_SIZE]
                for entry in paired:
                    entry.state = QueueEntryState.PAIRED
                    entry.last_activity = time.monotonic()
                    self._deadlines.arm(entry.participant_id)
                self._roster = paired
                first, second = (entry.participant for entry in paired)
                logger.info("paired %s with %s", first.participant_id, second.participant_id)

                await self._broadcast_state()
                await self._on_pairing_ready(first, second)
        finally:
            self._pairing_in_flight = False

    # --- Inactivity ---

    async def _handle_deadline_expired(self, participant_id: str) -> None:
        entry = next((e for e in self._roster if e.participant_id == participant_id), None)
        if entry is None:
            return
        self._roster.remove(entry)
        logger.info("participant %s evicted for inactivity", participant_id)

        await self._notifier.broadcast(
            ParticipantInactiveMessage(
                participant_id=participant_id,
                display_name=entry.participant.display_name,
            ).model_dump(),
        )
        await self._broadcast_state()
        await self._on_participant_inactive(participant_id)

    # --- Helpers ---

    def _remove_waiting(self, participant_id: str) -> bool:
        for index, entry in enumerate(self._waiting):
            if entry.participant_id == participant_id:
                del self._waiting[index]
                return True
        return False

    async def _broadcast_state(self) -> None:
        snapshot = self.snapshot()
        await self._notifier.broadcast(
            QueueUpdatedMessage(
                entries=snapshot.entries,
                queue_size=snapshot.queue_size,
                max_size=snapshot.max_size,
            ).model_dump(),
        )
        roster = self.roster()
        await self._notifier.broadcast(
            RosterUpdatedMessage(player1=roster.player1, player2=roster.player2).model_dump(),
        )
