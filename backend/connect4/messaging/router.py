from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from connect4.logic.enums import RejectionCode
from connect4.logic.exceptions import GameRuleError
from connect4.messaging.types import (
    ActionResultMessage,
    AdminTelemetryMessage,
    ClientMessageType,
    ErrorCode,
    ErrorMessage,
    HeartbeatAckMessage,
    HeartbeatMessage,
    JoinQueueMessage,
    LeaderboardUpdatedMessage,
    LeaveQueueMessage,
    MoveRejectedMessage,
    QueueUpdatedMessage,
    ResignMessage,
    RosterUpdatedMessage,
    StartBotSessionMessage,
    SubmitMoveMessage,
    parse_client_message,
)
from connect4.session.broadcast import ADMIN_GROUP

if TYPE_CHECKING:
    from connect4.messaging.protocol import ConnectionProtocol
    from connect4.session.broadcast import ConnectionHub
    from connect4.session.coordinator import MatchCoordinator
    from connect4.session.presence import PresenceTracker
    from connect4.session.types import TelemetrySnapshot

logger = logging.getLogger(__name__)


class MessageRouter:
    """
    Routes inbound participant messages to the coordinator.

    Rule violations are answered to the requester only; unexpected failures
    are logged and answered with a generic error. Holds no transport code,
    so it is tested with mock connections.
    """

    def __init__(
        self,
        coordinator: MatchCoordinator,
        hub: ConnectionHub,
        presence: PresenceTracker,
    ) -> None:
        self._coordinator = coordinator
        self._hub = hub
        self._presence = presence

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        participant = connection.participant
        await self._hub.replace(connection)
        self._presence.record_connect(participant)
        if participant.is_admin:
            self._hub.join_group(ADMIN_GROUP, participant.participant_id)
        await self._send_initial_state(connection)

    async def _send_initial_state(self, connection: ConnectionProtocol) -> None:
        snapshot = self._coordinator.queue_snapshot()
        roster = self._coordinator.roster()
        leaderboard = await self._coordinator.leaderboard()
        await connection.send_message(
            QueueUpdatedMessage(
                entries=snapshot.entries,
                queue_size=snapshot.queue_size,
                max_size=snapshot.max_size,
            ).model_dump(),
        )
        await connection.send_message(
            RosterUpdatedMessage(player1=roster.player1, player2=roster.player2).model_dump(),
        )
        await connection.send_message(LeaderboardUpdatedMessage(entries=leaderboard).model_dump())

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        if not self._hub.unregister(connection):
            # a newer connection for the same participant took over
            return
        participant_id = connection.participant_id
        self._presence.record_disconnect(participant_id)
        await self._coordinator.handle_disconnect(participant_id)

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        participant_id = connection.participant_id
        self._presence.record_activity(participant_id)
        structlog.contextvars.bind_contextvars(participant_id=participant_id)

        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message from %s: %s", participant_id, e)
            await connection.send_message(
                ErrorMessage(code=ErrorCode.INVALID_MESSAGE, message="Invalid message").model_dump(),
            )
            return

        try:
            await self._dispatch(connection, message)
        except GameRuleError as e:
            logger.info("request from %s rejected: %s", participant_id, e.code)
            await self._send_rejection(connection, message, e)
        except Exception:
            logger.exception("unexpected error handling %s from %s", message.type, participant_id)
            await connection.send_message(
                ErrorMessage(code=ErrorCode.INTERNAL_ERROR, message="Internal server error").model_dump(),
            )

    async def _dispatch(self, connection: ConnectionProtocol, message: Any) -> None:  # noqa: ANN401
        participant = connection.participant
        if isinstance(message, SubmitMoveMessage):
            structlog.contextvars.bind_contextvars(session_id=message.session_id)
            await self._coordinator.apply_move(message.session_id, participant.participant_id, message.column)
        elif isinstance(message, HeartbeatMessage):
            self._coordinator.renew_activity(participant.participant_id)
            await connection.send_message(HeartbeatAckMessage().model_dump())
        elif isinstance(message, JoinQueueMessage):
            position = await self._coordinator.join_queue(participant)
            await self._send_result(connection, message.type, message="Joined the queue", position=position)
        elif isinstance(message, LeaveQueueMessage):
            if await self._coordinator.leave_queue(participant.participant_id):
                await self._send_result(connection, message.type, message="Left the queue")
            else:
                await connection.send_message(
                    ActionResultMessage(
                        action=message.type,
                        success=False,
                        message="You are not in the queue",
                        code=RejectionCode.NOT_QUEUED,
                    ).model_dump(),
                )
        elif isinstance(message, StartBotSessionMessage):
            await self._coordinator.start_bot_session(participant, message.difficulty)
            await self._send_result(connection, message.type, message="Practice match started")
        elif isinstance(message, ResignMessage):
            structlog.contextvars.bind_contextvars(session_id=message.session_id)
            await self._coordinator.resign(message.session_id, participant.participant_id)
            await self._send_result(connection, message.type, message="You resigned")

    @staticmethod
    async def _send_result(
        connection: ConnectionProtocol,
        action: ClientMessageType,
        *,
        message: str,
        position: int | None = None,
    ) -> None:
        await connection.send_message(
            ActionResultMessage(action=action, success=True, message=message, position=position).model_dump(),
        )

    @staticmethod
    async def _send_rejection(connection: ConnectionProtocol, message: Any, error: GameRuleError) -> None:  # noqa: ANN401
        if isinstance(message, SubmitMoveMessage):
            reply = MoveRejectedMessage(session_id=message.session_id, code=error.code, reason=error.message)
        else:
            reply = ActionResultMessage(action=message.type, success=False, message=error.message, code=error.code)
        await connection.send_message(reply.model_dump())

    # --- Admin telemetry ---

    def build_telemetry(self) -> TelemetrySnapshot:
        return self._presence.build_snapshot(
            self._coordinator.queue_snapshot(),
            self._coordinator.roster(),
            self._coordinator.active_sessions(),
        )

    async def publish_telemetry(self) -> None:
        """Push the current telemetry snapshot to connected admins."""
        if not self._hub.group_members(ADMIN_GROUP):
            return
        await self._hub.send_to_group(
            ADMIN_GROUP,
            AdminTelemetryMessage(snapshot=self.build_telemetry()).model_dump(),
        )
