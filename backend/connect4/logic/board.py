"""
Connect Four board engine.

The board is a list of ROWS rows, each a list of COLUMNS cell values.
Row 0 is the top of the grid and row ROWS - 1 is the bottom, so tokens
dropped into a column land on the highest-numbered empty row. Because
columns always fill bottom-up, a column is full exactly when its top cell
is occupied.
"""

from enum import IntEnum

from connect4.logic.exceptions import ColumnFullError, InvalidColumnError

ROWS = 6
COLUMNS = 7
WIN_LENGTH = 4

_ROW_SEPARATOR = "/"

# (row_step, column_step) for horizontal, vertical and both diagonals
AXES: tuple[tuple[int, int], ...] = ((0, 1), (1, 0), (1, 1), (1, -1))


class Token(IntEnum):
    EMPTY = 0
    A = 1
    B = 2


Board = list[list[int]]


def new_board() -> Board:
    return [[Token.EMPTY.value] * COLUMNS for _ in range(ROWS)]


def copy_board(board: Board) -> Board:
    return [list(row) for row in board]


def opponent_of(token: Token) -> Token:
    if token == Token.EMPTY:
        raise ValueError("EMPTY has no opponent")
    return Token.B if token == Token.A else Token.A


def is_valid_column(column: int) -> bool:
    return isinstance(column, int) and not isinstance(column, bool) and 0 <= column < COLUMNS


def can_drop(board: Board, column: int) -> bool:
    return is_valid_column(column) and board[0][column] == Token.EMPTY


def legal_columns(board: Board) -> list[int]:
    """Return the non-full columns in ascending order."""
    return [column for column in range(COLUMNS) if can_drop(board, column)]


def drop_token(board: Board, column: int, token: Token) -> int:
    """
    Drop a token into a column and return the row it landed on.

    Validation happens before any mutation: an out-of-range column raises
    InvalidColumnError and a full column raises ColumnFullError, both
    leaving the board untouched.
    """
    if not is_valid_column(column):
        raise InvalidColumnError
    if token == Token.EMPTY:
        raise ValueError("cannot drop an EMPTY token")
    if board[0][column] != Token.EMPTY:
        raise ColumnFullError
    for row in range(ROWS - 1, -1, -1):
        if board[row][column] == Token.EMPTY:
            board[row][column] = token.value
            return row
    raise ColumnFullError  # pragma: no cover


def _run_length(board: Board, row: int, column: int, row_step: int, column_step: int, token: int) -> int:
    """Count contiguous `token` cells starting one step away from (row, column)."""
    count = 0
    r, c = row + row_step, column + column_step
    while 0 <= r < ROWS and 0 <= c < COLUMNS and board[r][c] == token:
        count += 1
        r += row_step
        c += column_step
    return count


def is_winning_drop(board: Board, row: int, column: int, token: Token) -> bool:
    """Check whether the cell at (row, column) completes a run of WIN_LENGTH along any axis."""
    if board[row][column] != token:
        return False
    for row_step, column_step in AXES:
        run = 1
        run += _run_length(board, row, column, row_step, column_step, token)
        run += _run_length(board, row, column, -row_step, -column_step, token)
        if run >= WIN_LENGTH:
            return True
    return False


def is_full(board: Board) -> bool:
    return all(cell != Token.EMPTY for cell in board[0])


def encode_board(board: Board) -> str:
    """Serialize a board to its persisted form: one digit per cell, rows top to bottom."""
    return _ROW_SEPARATOR.join("".join(str(cell) for cell in row) for row in board)


def decode_board(text: str) -> Board:
    """Parse the persisted form produced by encode_board. Raises ValueError on malformed input."""
    rows = text.split(_ROW_SEPARATOR)
    if len(rows) != ROWS:
        raise ValueError(f"expected {ROWS} rows, got {len(rows)}")
    allowed = {str(token.value) for token in Token}
    board: Board = []
    for row_text in rows:
        if len(row_text) != COLUMNS or any(ch not in allowed for ch in row_text):
            raise ValueError(f"malformed board row: {row_text!r}")
        board.append([int(ch) for ch in row_text])
    return board
