import pytest

from connect4.logic.board import (
    COLUMNS,
    ROWS,
    Token,
    can_drop,
    copy_board,
    decode_board,
    drop_token,
    encode_board,
    is_full,
    is_winning_drop,
    legal_columns,
    new_board,
    opponent_of,
)
from connect4.logic.exceptions import ColumnFullError, InvalidColumnError
from connect4.tests.helpers.session import board_from_rows


class TestNewBoard:
    def test_dimensions_and_empty(self):
        board = new_board()
        assert len(board) == ROWS
        assert all(len(row) == COLUMNS for row in board)
        assert all(cell == Token.EMPTY for row in board for cell in row)

    def test_rows_are_independent(self):
        board = new_board()
        board[0][0] = Token.A
        assert board[1][0] == Token.EMPTY


class TestDropToken:
    def test_first_drop_lands_on_bottom_row(self):
        board = new_board()
        assert drop_token(board, 3, Token.A) == ROWS - 1
        assert board[5][3] == Token.A

    def test_drops_stack_upward(self):
        board = new_board()
        rows = [drop_token(board, 0, Token.A if i % 2 == 0 else Token.B) for i in range(ROWS)]
        assert rows == [5, 4, 3, 2, 1, 0]

    @pytest.mark.parametrize("column", [-1, COLUMNS, 100])
    def test_out_of_range_column_rejected(self, column):
        board = new_board()
        with pytest.raises(InvalidColumnError):
            drop_token(board, column, Token.A)
        assert board == new_board()

    def test_bool_column_rejected(self):
        with pytest.raises(InvalidColumnError):
            drop_token(new_board(), True, Token.A)

    def test_full_column_rejected_without_mutation(self):
        board = new_board()
        for i in range(ROWS):
            drop_token(board, 2, Token.A if i % 2 == 0 else Token.B)
        before = copy_board(board)

        with pytest.raises(ColumnFullError):
            drop_token(board, 2, Token.A)

        assert board == before

    def test_empty_token_rejected(self):
        with pytest.raises(ValueError, match="EMPTY"):
            drop_token(new_board(), 0, Token.EMPTY)


class TestWinDetection:
    def test_horizontal_win(self):
        board = board_from_rows("AAA....")
        row = drop_token(board, 3, Token.A)
        assert is_winning_drop(board, row, 3, Token.A)

    def test_horizontal_win_with_gap_filled_in_middle(self):
        board = board_from_rows("AA.A...")
        row = drop_token(board, 2, Token.A)
        assert is_winning_drop(board, row, 2, Token.A)

    def test_vertical_win(self):
        board = board_from_rows("A......", "A......", "A......")
        row = drop_token(board, 0, Token.A)
        assert row == 2
        assert is_winning_drop(board, row, 0, Token.A)

    def test_diagonal_win(self):
        board = board_from_rows(
            "...B...",
            "..BA...",
            ".BAA...",
            "BAAA...",
        )
        # completed by the top of the rising diagonal from (5, 0)
        board[2][3] = Token.EMPTY
        row = drop_token(board, 3, Token.B)
        assert row == 2
        assert is_winning_drop(board, row, 3, Token.B)

    def test_anti_diagonal_win(self):
        board = board_from_rows(
            "B......",
            "AB.....",
            "AAB....",
            "AAAB...",
        )
        assert is_winning_drop(board, 5, 3, Token.B)
        assert is_winning_drop(board, 2, 0, Token.B)

    def test_three_in_a_row_is_not_a_win(self):
        board = board_from_rows("AAB....")
        row = drop_token(board, 3, Token.A)
        assert not is_winning_drop(board, row, 3, Token.A)

    def test_opponent_tokens_break_the_run(self):
        board = board_from_rows("AABAA..")
        assert not is_winning_drop(board, 5, 4, Token.A)

    def test_cell_must_hold_the_token(self):
        board = board_from_rows("AAAA...")
        assert not is_winning_drop(board, 5, 0, Token.B)


class TestBoardQueries:
    def test_is_full_checks_top_row(self):
        board = decode_board("1212121/2121212/1212121/2121212/1212121/2121212")
        assert is_full(board)
        board[0][6] = Token.EMPTY
        assert not is_full(board)

    def test_legal_columns_ascending(self):
        board = board_from_rows(
            "A.A....",
            "B.B....",
            "A.A....",
            "B.B....",
            "A.A....",
            "B.B....",
        )
        assert legal_columns(board) == [1, 3, 4, 5, 6]

    def test_can_drop_rejects_full_and_out_of_range_columns(self):
        board = board_from_rows("A......", "B......", "A......", "B......", "A......", "B......")
        assert not can_drop(board, 0)
        assert can_drop(board, 1)
        assert not can_drop(board, -1)
        assert not can_drop(board, COLUMNS)
        assert not can_drop(board, True)

    def test_opponent_of(self):
        assert opponent_of(Token.A) == Token.B
        assert opponent_of(Token.B) == Token.A
        with pytest.raises(ValueError, match="no opponent"):
            opponent_of(Token.EMPTY)


class TestEncoding:
    def test_round_trip(self):
        board = board_from_rows("..B....", ".AB....", "AAB.B..")
        assert decode_board(encode_board(board)) == board

    def test_encoded_form(self):
        board = new_board()
        drop_token(board, 0, Token.A)
        assert encode_board(board) == "0000000/0000000/0000000/0000000/0000000/1000000"

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "0000000/0000000",
            "0000000/0000000/0000000/0000000/0000000/000000",
            "0000000/0000000/0000000/0000000/0000000/000000x",
            "0000000/0000000/0000000/0000000/0000000/3000000",
        ],
    )
    def test_malformed_text_rejected(self, text):
        with pytest.raises(ValueError):
            decode_board(text)
