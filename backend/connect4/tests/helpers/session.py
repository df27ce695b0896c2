"""Builders for participants, boards and connected mock clients."""

from connect4.logic.board import COLUMNS, Board, Token
from connect4.messaging.mock import MockConnection
from connect4.session.models import Participant

_CELL = {".": Token.EMPTY, "A": Token.A, "B": Token.B}


def make_participant(participant_id: str, display_name: str | None = None, *, is_admin: bool = False) -> Participant:
    return Participant(
        participant_id=participant_id,
        display_name=display_name or participant_id.upper(),
        avatar=f"{participant_id}.png",
        is_admin=is_admin,
    )


def board_from_rows(*rows: str) -> Board:
    """Build a board from row strings, top row first. Missing top rows are empty.

    Cells: "." empty, "A" and "B" tokens.
    """
    padded = ["." * COLUMNS] * (6 - len(rows)) + list(rows)
    return [[_CELL[ch].value for ch in row] for row in padded]


def connect(hub, participant_id: str, *, is_admin: bool = False) -> MockConnection:
    """Register a mock connection for a fresh participant with the hub."""
    connection = MockConnection(make_participant(participant_id, is_admin=is_admin))
    hub.register(connection)
    return connection
