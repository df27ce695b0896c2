"""
Bot opponent for practice sessions.

Medium and hard bots search the game tree with minimax and alpha-beta
pruning, scoring leaves with a window heuristic: every 4-cell line on the
board is scored once, rewarding open twos and threes and penalizing the
opponent's open threes, plus a small bonus for center-column tokens.
Weaker tiers simulate mistakes by occasionally replacing the computed move
with a random legal column.
"""

import random

from pydantic import BaseModel, ConfigDict, Field

from connect4.logic.board import (
    COLUMNS,
    ROWS,
    WIN_LENGTH,
    Board,
    Token,
    can_drop,
    copy_board,
    drop_token,
    is_full,
    is_winning_drop,
    legal_columns,
    opponent_of,
)
from connect4.logic.enums import Difficulty

WIN_SCORE = 1_000_000
CENTER_WEIGHT = 3
THREE_WEIGHT = 5
TWO_WEIGHT = 2
OPPONENT_THREE_PENALTY = 4

_CENTER_COLUMN = COLUMNS // 2
# interior nodes try center columns first so alpha-beta prunes earlier
_SEARCH_ORDER = tuple(sorted(range(COLUMNS), key=lambda c: (abs(c - _CENTER_COLUMN), c)))


def _build_windows() -> tuple[tuple[tuple[int, int], ...], ...]:
    """Enumerate every 4-cell line on the board, once per direction."""
    windows = []
    for row in range(ROWS):
        for column in range(COLUMNS):
            for row_step, column_step in ((0, 1), (1, 0), (1, 1), (-1, 1)):
                end_row = row + row_step * (WIN_LENGTH - 1)
                end_column = column + column_step * (WIN_LENGTH - 1)
                if 0 <= end_row < ROWS and 0 <= end_column < COLUMNS:
                    windows.append(
                        tuple((row + row_step * i, column + column_step * i) for i in range(WIN_LENGTH)),
                    )
    return tuple(windows)


WINDOWS = _build_windows()


class BotProfile(BaseModel):
    """Search depth and error rates for one difficulty tier."""

    model_config = ConfigDict(frozen=True)

    depth: int = Field(ge=0)
    mistake_chance: float = Field(ge=0, le=1)
    # share of turns on which a non-searching bot even looks for a win or block
    tactical_chance: float = Field(default=1.0, ge=0, le=1)


BOT_PROFILES: dict[Difficulty, BotProfile] = {
    Difficulty.EASY: BotProfile(depth=0, mistake_chance=0.9, tactical_chance=0.05),
    Difficulty.MEDIUM: BotProfile(depth=4, mistake_chance=0.2),
    Difficulty.HARD: BotProfile(depth=6, mistake_chance=0.0),
}


def score_window(cells: list[int], token: Token) -> int:
    own = cells.count(token)
    empty = cells.count(Token.EMPTY)
    opponent = cells.count(opponent_of(token))

    score = 0
    if own == WIN_LENGTH - 1 and empty == 1:
        score += THREE_WEIGHT
    elif own == WIN_LENGTH - 2 and empty == 2:  # noqa: PLR2004
        score += TWO_WEIGHT
    if opponent == WIN_LENGTH - 1 and empty == 1:
        score -= OPPONENT_THREE_PENALTY
    return score


def evaluate_board(board: Board, token: Token) -> int:
    """Heuristic value of a non-terminal board from `token`'s point of view."""
    opponent = opponent_of(token)
    score = CENTER_WEIGHT * sum(1 for row in range(ROWS) if board[row][_CENTER_COLUMN] == token)
    for window in WINDOWS:
        cells = [board[r][c] for r, c in window]
        score += score_window(cells, token)
        score -= score_window(cells, opponent)
    return score


def find_winning_column(board: Board, token: Token) -> int | None:
    """Return the lowest column where `token` wins immediately, or None."""
    scratch = copy_board(board)
    for column in legal_columns(scratch):
        row = drop_token(scratch, column, token)
        won = is_winning_drop(scratch, row, column, token)
        scratch[row][column] = Token.EMPTY
        if won:
            return column
    return None


class BotPlayer:
    """
    Column picker for one bot seat.

    The random source is injectable so tests can pin easy and medium
    behaviour; hard difficulty never draws from it and is deterministic.
    """

    def __init__(
        self,
        difficulty: Difficulty = Difficulty.HARD,
        token: Token = Token.B,
        rng: random.Random | None = None,
        profile: BotProfile | None = None,
    ) -> None:
        self.difficulty = difficulty
        self.token = token
        self.opponent = opponent_of(token)
        self.profile = profile or BOT_PROFILES[difficulty]
        self._rng = rng or random.Random()  # noqa: S311

    def choose_move(self, board: Board) -> int | None:
        """Pick a column for the bot, or None when the board has no legal move."""
        columns = legal_columns(board)
        if not columns:
            return None

        if self.profile.depth == 0:
            return self._choose_shallow(board, columns)

        column = self._choose_searched(board, columns)
        if self.profile.mistake_chance > 0 and self._rng.random() < self.profile.mistake_chance:
            return self._rng.choice(columns)
        return column

    def _choose_shallow(self, board: Board, columns: list[int]) -> int:
        """Mostly random play with an occasional look for an immediate win or block."""
        if self._rng.random() < self.profile.tactical_chance:
            for token in (self.token, self.opponent):
                column = find_winning_column(board, token)
                if column is not None and self._rng.random() >= self.profile.mistake_chance:
                    return column
        return self._rng.choice(columns)

    def _choose_searched(self, board: Board, columns: list[int]) -> int:
        winning = find_winning_column(board, self.token)
        if winning is not None:
            return winning
        blocking = find_winning_column(board, self.opponent)
        if blocking is not None:
            return blocking
        return self._best_column(copy_board(board), columns)

    def _best_column(self, board: Board, columns: list[int]) -> int:
        """Run the root of the search. Ties keep the first column scanned."""
        depth = self.profile.depth
        best_column = columns[0]
        best_score = -WIN_SCORE * 2
        alpha = -WIN_SCORE * 2
        beta = WIN_SCORE * 2
        for column in columns:
            row = drop_token(board, column, self.token)
            score = self._minimax(board, depth - 1, alpha, beta, row, column, self.token)
            board[row][column] = Token.EMPTY
            if score > best_score:
                best_score = score
                best_column = column
            alpha = max(alpha, best_score)
        return best_column

    def _minimax(
        self,
        board: Board,
        depth: int,
        alpha: int,
        beta: int,
        last_row: int,
        last_column: int,
        last_token: Token,
    ) -> int:
        if is_winning_drop(board, last_row, last_column, last_token):
            # remaining depth rewards faster wins and slower losses
            return WIN_SCORE + depth if last_token == self.token else -WIN_SCORE - depth
        if depth <= 0 or is_full(board):
            return evaluate_board(board, self.token)

        maximizing = last_token != self.token
        mover = self.token if maximizing else self.opponent
        best = -WIN_SCORE * 2 if maximizing else WIN_SCORE * 2
        for column in _SEARCH_ORDER:
            if not can_drop(board, column):
                continue
            row = drop_token(board, column, mover)
            score = self._minimax(board, depth - 1, alpha, beta, row, column, mover)
            board[row][column] = Token.EMPTY
            if maximizing:
                best = max(best, score)
                alpha = max(alpha, score)
            else:
                best = min(best, score)
                beta = min(beta, score)
            if beta <= alpha:
                break
        return best


def choose_move(
    board: Board,
    difficulty: Difficulty,
    *,
    token: Token = Token.B,
    rng: random.Random | None = None,
) -> int | None:
    """Pick a column for a one-off bot decision."""
    return BotPlayer(difficulty, token=token, rng=rng).choose_move(board)
