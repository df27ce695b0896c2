from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from connect4.messaging.encoder import DecodeError, decode
from connect4.messaging.protocol import ConnectionProtocol
from connect4.messaging.types import ErrorCode, ErrorMessage
from connect4.session.models import Participant
from shared.auth.ticket import verify_ticket

logger = structlog.get_logger()

if TYPE_CHECKING:
    from connect4.messaging.router import MessageRouter

_MAX_TICKET_LENGTH = 4096

# Disconnect after this many consecutive decode errors
_MAX_DECODE_ERRORS = 5


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, participant: Participant, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._participant = participant
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def participant(self) -> Participant:
        return self._participant

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


def resolve_participant(token: str | None, secret: str) -> Participant | None:
    """Turn a ticket string into a Participant, or None if it does not verify."""
    if not token or len(token) > _MAX_TICKET_LENGTH:
        return None
    ticket = verify_ticket(token, secret)
    if ticket is None:
        return None
    return Participant(
        participant_id=ticket.user_id,
        display_name=ticket.username,
        avatar=ticket.avatar,
        is_admin=ticket.is_admin,
    )


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter, ticket_secret: str) -> None:
    participant = resolve_participant(websocket.query_params.get("ticket"), ticket_secret)
    if participant is None or participant.is_bot:
        await websocket.close(code=4001, reason="invalid_ticket")
        return

    await websocket.accept()

    connection = WebSocketConnection(websocket, participant)
    structlog.contextvars.bind_contextvars(participant_id=participant.participant_id)
    logger.info("websocket connected", connection_id=connection.connection_id)
    decode_errors = 0

    try:
        await router.handle_connect(connection)
        while True:
            raw = await connection.receive_bytes()

            try:
                data = decode(raw)
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(
                    ErrorMessage(code=ErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
                )
                if decode_errors >= _MAX_DECODE_ERRORS:
                    logger.info("too many decode errors, disconnecting", connection_id=connection.connection_id)
                    await connection.close(code=4004, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0
            await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):
        pass
    finally:
        logger.info("websocket disconnected", connection_id=connection.connection_id)
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
