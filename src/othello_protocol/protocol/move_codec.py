from __future__ import annotations

from typing import NamedTuple

from othello_protocol.protocol.constants import BOARD_SIZE
from othello_protocol.protocol.errors import InvalidMoveFormat

_COLUMNS = "abcdefgh"
_ROWS = "12345678"
_COLUMN_INDEX = {letter: index for index, letter in enumerate(_COLUMNS)}
_ROW_INDEX = {digit: index for index, digit in enumerate(_ROWS)}


class Move(NamedTuple):
    col: int
    row: int

    def __str__(self) -> str:
        return MoveCodec.encode(self)


class MoveCodec:
    @staticmethod
    def decode(token: str) -> Move:
        """Parse a token such as ``c3``; uppercase letters are folded."""
        if len(token) != 2:
            raise InvalidMoveFormat(f"Move {token!r} has invalid length")
        letter, digit = token[0].lower(), token[1]
        if letter not in _COLUMN_INDEX:
            raise InvalidMoveFormat(f"Move {token!r} has invalid column")
        if digit not in _ROW_INDEX:
            raise InvalidMoveFormat(f"Move {token!r} has invalid row")
        return Move(col=_COLUMN_INDEX[letter], row=_ROW_INDEX[digit])

    @staticmethod
    def encode(move: Move) -> str:
        col, row = move
        if not (0 <= col < BOARD_SIZE and 0 <= row < BOARD_SIZE):
            raise InvalidMoveFormat(f"Move ({col}, {row}) is off the board")
        return f"{_COLUMNS[col]}{_ROWS[row]}"
