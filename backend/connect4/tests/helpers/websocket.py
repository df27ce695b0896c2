"""Helpers for driving the arena WebSocket through Starlette's TestClient."""

from connect4.messaging.encoder import decode, encode
from connect4.tests.helpers.auth import make_test_ticket

_MAX_SKIPPED_MESSAGES = 50


def send_ws(ws, data: dict) -> None:
    """Send a MessagePack-encoded message over a test WebSocket."""
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())


def recv_until(ws, message_type: str) -> dict:
    """Read messages until one of the given type arrives."""
    for _ in range(_MAX_SKIPPED_MESSAGES):
        message = recv_ws(ws)
        if message["type"] == message_type:
            return message
    raise AssertionError(f"no {message_type} message received")


def ws_url(user_id: str, username: str | None = None, *, is_admin: bool = False) -> str:
    ticket = make_test_ticket(user_id, username or user_id, is_admin=is_admin)
    return f"/ws?ticket={ticket}"


def skip_initial_state(ws) -> list[dict]:
    """Consume the queue, roster and leaderboard push sent on connect."""
    return [recv_ws(ws) for _ in range(3)]
