from typing import Dict, List, Optional, Sequence

from othello_protocol.protocol.board_codec import Board
from othello_protocol.protocol.constants import BOARD_SIZE, Tile
from othello_protocol.protocol.move_codec import Move

DIRECTIONS = [
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1)
]


class GameBoard:
    """Mutable Othello position: grid plus the player to move."""

    def __init__(self):
        self.size = BOARD_SIZE
        self.grid: List[List[Tile]] = [[Tile.EMPTY for _ in range(self.size)] for _ in range(self.size)]
        self.current_player = Tile.BLACK
        self._init_board()

    def _init_board(self):
        """Initialize the board with the standard 4 starting pieces."""
        mid = self.size // 2
        # d4, e5 -> WHITE; e4, d5 -> BLACK
        self.grid[mid-1][mid-1] = Tile.WHITE
        self.grid[mid][mid] = Tile.WHITE
        self.grid[mid][mid-1] = Tile.BLACK
        self.grid[mid-1][mid] = Tile.BLACK
        self.current_player = Tile.BLACK

    @classmethod
    def from_snapshot(cls, board: Board, current_player: Tile = Tile.BLACK) -> "GameBoard":
        game_board = cls()
        game_board.grid = [list(row) for row in board.rows]
        game_board.current_player = current_player
        return game_board

    def snapshot(self) -> Board:
        return Board(tuple(tuple(row) for row in self.grid))

    def is_on_board(self, r: int, c: int) -> bool:
        return 0 <= r < self.size and 0 <= c < self.size

    def get_piece(self, r: int, c: int) -> Optional[Tile]:
        if self.is_on_board(r, c):
            return self.grid[r][c]
        return None

    def get_valid_moves(self, player: Tile) -> List[Move]:
        """Return legal moves for ``player`` in row-major order."""
        valid_moves = []
        for r in range(self.size):
            for c in range(self.size):
                if self.is_valid_move(r, c, player):
                    valid_moves.append(Move(col=c, row=r))
        return valid_moves

    def is_valid_move(self, r: int, c: int, player: Tile) -> bool:
        if not self.is_on_board(r, c) or self.grid[r][c] is not Tile.EMPTY:
            return False

        opponent = player.opponent()
        for dr, dc in DIRECTIONS:
            nr, nc = r + dr, c + dc
            if self.is_on_board(nr, nc) and self.grid[nr][nc] is opponent:
                # Found opponent piece, keep checking in this direction
                while True:
                    nr += dr
                    nc += dc
                    if not self.is_on_board(nr, nc):
                        break
                    if self.grid[nr][nc] is Tile.EMPTY:
                        break
                    if self.grid[nr][nc] is player:
                        return True
        return False

    def play_move(self, move: Move, player: Tile) -> bool:
        """Execute a move. Returns True if successful."""
        r, c = move.row, move.col
        if not self.is_valid_move(r, c, player):
            return False

        self.grid[r][c] = player
        opponent = player.opponent()

        for dr, dc in DIRECTIONS:
            nr, nc = r + dr, c + dc
            pieces_to_flip = []

            while self.is_on_board(nr, nc) and self.grid[nr][nc] is opponent:
                pieces_to_flip.append((nr, nc))
                nr += dr
                nc += dc

            if self.is_on_board(nr, nc) and self.grid[nr][nc] is player:
                for fr, fc in pieces_to_flip:
                    self.grid[fr][fc] = player

        self.current_player = opponent
        return True

    def pass_turn(self, player: Tile) -> bool:
        """Pass the turn to the opponent without placing a disk."""
        if player is Tile.EMPTY or self.current_player is not player:
            return False
        self.current_player = player.opponent()
        return True

    def has_valid_move(self, player: Tile) -> bool:
        return len(self.get_valid_moves(player)) > 0

    def is_game_over(self) -> bool:
        return not self.has_valid_move(Tile.BLACK) and not self.has_valid_move(Tile.WHITE)

    def get_score(self) -> Dict[Tile, int]:
        black_score = 0
        white_score = 0
        for row in self.grid:
            for piece in row:
                if piece is Tile.BLACK:
                    black_score += 1
                elif piece is Tile.WHITE:
                    white_score += 1
        return {Tile.BLACK: black_score, Tile.WHITE: white_score}

    def clone(self) -> "GameBoard":
        copied = GameBoard()
        copied.grid = [row[:] for row in self.grid]
        copied.current_player = self.current_player
        return copied


def infer_next_player(board: Board, moves: Sequence[Move]) -> Tile:
    """Work out who is to move when the request does not say.

    The listed moves must all be legal for the mover; disc parity
    breaks ties (Black moves on even disc counts when nobody passed).
    """
    game_board = GameBoard.from_snapshot(board)
    if moves:
        candidates = [
            player for player in (Tile.BLACK, Tile.WHITE)
            if all(game_board.is_valid_move(move.row, move.col, player) for move in moves)
        ]
        if len(candidates) == 1:
            return candidates[0]
    discs = board.count(Tile.BLACK) + board.count(Tile.WHITE)
    return Tile.BLACK if discs % 2 == 0 else Tile.WHITE
