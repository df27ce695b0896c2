import pytest
from pydantic import ValidationError

from connect4.logic.enums import Difficulty, FinishReason, RejectionCode
from connect4.messaging.encoder import decode, encode
from connect4.messaging.mock import MockConnection
from connect4.messaging.types import (
    ActionResultMessage,
    ClientMessageType,
    HeartbeatMessage,
    JoinQueueMessage,
    MoveRejectedMessage,
    SessionFinishedMessage,
    StartBotSessionMessage,
    SubmitMoveMessage,
    parse_client_message,
)


class TestParseClientMessage:
    def test_join_queue(self):
        assert isinstance(parse_client_message({"type": "join_queue"}), JoinQueueMessage)

    def test_heartbeat(self):
        assert isinstance(parse_client_message({"type": "heartbeat"}), HeartbeatMessage)

    def test_submit_move(self):
        message = parse_client_message({"type": "submit_move", "session_id": "abc-123", "column": 4})

        assert isinstance(message, SubmitMoveMessage)
        assert message.column == 4

    def test_bot_difficulty_defaults_to_medium(self):
        message = parse_client_message({"type": "start_bot_session"})

        assert isinstance(message, StartBotSessionMessage)
        assert message.difficulty == Difficulty.MEDIUM

    @pytest.mark.parametrize(
        "raw",
        [
            {"type": "submit_move", "session_id": "abc", "column": 2.0},
            {"type": "submit_move", "session_id": "abc", "column": True},
            {"type": "submit_move", "session_id": "abc"},
            {"type": "submit_move", "session_id": "", "column": 1},
            {"type": "submit_move", "session_id": "x" * 65, "column": 1},
            {"type": "resign"},
        ],
    )
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValidationError):
            parse_client_message(raw)


class TestServerMessages:
    def test_session_finished_payload(self):
        message = SessionFinishedMessage(
            session_id="s1",
            winner_id=None,
            draw=True,
            reason=FinishReason.DRAW,
            board=[[0] * 7 for _ in range(6)],
        )

        payload = decode(encode(message.model_dump()))

        assert payload["type"] == "session_finished"
        assert payload["reason"] == "draw"
        assert payload["winner_id"] is None

    def test_rejection_payloads(self):
        move = MoveRejectedMessage(session_id="s1", code=RejectionCode.COLUMN_FULL, reason="Column is full")
        action = ActionResultMessage(action=ClientMessageType.JOIN_QUEUE, success=False, code=RejectionCode.QUEUE_FULL)

        assert decode(encode(move.model_dump()))["code"] == "column_full"
        assert decode(encode(action.model_dump()))["code"] == "queue_full"


class TestMockConnection:
    async def test_round_trip_through_mock(self):
        connection = MockConnection()

        await connection.simulate_receive({"type": "heartbeat"})

        assert await connection.receive_message() == {"type": "heartbeat"}

    async def test_closed_connection_refuses_sends(self):
        connection = MockConnection()
        await connection.close(code=4001, reason="invalid_ticket")

        with pytest.raises(RuntimeError):
            await connection.send_message({"type": "ping"})
        assert connection.is_closed
