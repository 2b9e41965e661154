from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

from othello_protocol.protocol.constants import BOARD_SIZE, Tile
from othello_protocol.protocol.errors import MalformedBoard

_SYMBOLS = {tile.symbol: tile for tile in Tile}


@dataclass(frozen=True)
class Board:
    """Immutable 8x8 grid of tiles, row 0 at the top."""

    rows: Tuple[Tuple[Tile, ...], ...]

    def __post_init__(self):
        if len(self.rows) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in self.rows):
            raise ValueError("Board must have exactly 8 rows of 8 tiles")
        if not all(isinstance(tile, Tile) for row in self.rows for tile in row):
            raise ValueError("Board cells must be Tile values")

    @classmethod
    def empty(cls) -> "Board":
        return cls(tuple(tuple(Tile.EMPTY for _ in range(BOARD_SIZE)) for _ in range(BOARD_SIZE)))

    def tile(self, row: int, col: int) -> Tile:
        return self.rows[row][col]

    def count(self, tile: Tile) -> int:
        return sum(1 for row in self.rows for cell in row if cell is tile)


class BoardCodec:
    @staticmethod
    def decode(lines: Sequence[str]) -> Board:
        """Parse 8 board lines; any defect rejects the whole board."""
        if len(lines) != BOARD_SIZE:
            raise MalformedBoard(f"Expected {BOARD_SIZE} board lines, got {len(lines)}")

        rows: List[Tuple[Tile, ...]] = []
        for index, line in enumerate(lines):
            if len(line) != BOARD_SIZE:
                raise MalformedBoard(
                    f"Board line {index + 1} {line!r} has {len(line)} characters, expected {BOARD_SIZE}"
                )
            try:
                rows.append(tuple(_SYMBOLS[char] for char in line))
            except KeyError as exc:
                raise MalformedBoard(
                    f"Board line {index + 1} {line!r} contains invalid character {exc.args[0]!r}"
                ) from exc
        return Board(tuple(rows))

    @staticmethod
    def encode(board: Board) -> List[str]:
        return ["".join(tile.symbol for tile in row) for row in board.rows]
