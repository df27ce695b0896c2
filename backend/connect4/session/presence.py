"""Track connected participants and publish admin telemetry."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from connect4.logic.enums import PresenceState
from connect4.session.types import PresenceRow, TelemetryCounts, TelemetrySnapshot

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from connect4.session.models import Participant
    from connect4.session.types import QueueSnapshot, RosterView, SessionSummary

logger = logging.getLogger(__name__)

DEFAULT_ACTIVE_THRESHOLD_SECONDS = 300.0


@dataclass
class PresenceRecord:
    participant: Participant
    connected_at: float  # time.monotonic() timestamps
    last_activity: float


class PresenceTracker:
    """Per-participant activity timestamps for administrative observers.

    Purely observational: nothing here touches queue or session state.
    """

    def __init__(self, active_threshold_seconds: float = DEFAULT_ACTIVE_THRESHOLD_SECONDS) -> None:
        self._active_threshold_seconds = active_threshold_seconds
        self._records: dict[str, PresenceRecord] = {}  # participant_id -> record
        self._publish_task: asyncio.Task[None] | None = None

    def record_connect(self, participant: Participant) -> None:
        now = time.monotonic()
        self._records[participant.participant_id] = PresenceRecord(
            participant=participant,
            connected_at=now,
            last_activity=now,
        )

    def record_activity(self, participant_id: str) -> None:
        record = self._records.get(participant_id)
        if record is not None:
            record.last_activity = time.monotonic()

    def record_disconnect(self, participant_id: str) -> None:
        self._records.pop(participant_id, None)

    def is_tracked(self, participant_id: str) -> bool:
        return participant_id in self._records

    def classify(self, now: float | None = None) -> dict[str, PresenceState]:
        """Active/inactive state per tracked participant."""
        now = time.monotonic() if now is None else now
        return {
            participant_id: self._state_for(record, now)
            for participant_id, record in self._records.items()
        }

    def _state_for(self, record: PresenceRecord, now: float) -> PresenceState:
        if now - record.last_activity <= self._active_threshold_seconds:
            return PresenceState.ACTIVE
        return PresenceState.INACTIVE

    def build_snapshot(
        self,
        queue: QueueSnapshot,
        roster: RosterView,
        sessions: list[SessionSummary],
        now: float | None = None,
    ) -> TelemetrySnapshot:
        now = time.monotonic() if now is None else now
        rows = [
            PresenceRow(
                participant_id=participant_id,
                display_name=record.participant.display_name,
                is_admin=record.participant.is_admin,
                connected_seconds=round(now - record.connected_at, 1),
                idle_seconds=round(now - record.last_activity, 1),
                state=self._state_for(record, now),
            )
            for participant_id, record in self._records.items()
        ]
        active = sum(1 for row in rows if row.state == PresenceState.ACTIVE)
        return TelemetrySnapshot(
            counts=TelemetryCounts(
                connected=len(rows),
                active=active,
                inactive=len(rows) - active,
                waiting=queue.queue_size,
                active_sessions=len(sessions),
            ),
            users=rows,
            queue=queue.entries,
            roster=roster,
            sessions=sessions,
            generated_at=datetime.now(UTC).isoformat(),
        )

    # --- Periodic publishing ---

    def start_publishing(self, interval_seconds: float, publish: Callable[[], Awaitable[None]]) -> None:
        self.stop_publishing()
        self._publish_task = asyncio.create_task(self._publish_loop(interval_seconds, publish))

    def stop_publishing(self) -> None:
        if self._publish_task is not None and not self._publish_task.done():
            self._publish_task.cancel()
        self._publish_task = None

    async def aclose(self) -> None:
        task = self._publish_task
        self.stop_publishing()
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    @property
    def is_publishing(self) -> bool:
        return self._publish_task is not None and not self._publish_task.done()

    async def _publish_loop(self, interval_seconds: float, publish: Callable[[], Awaitable[None]]) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                await publish()
            except Exception:
                logger.exception("admin telemetry publish failed")
