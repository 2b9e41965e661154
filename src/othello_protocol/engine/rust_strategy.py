from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from othello_protocol.engine.base_strategy import CancelToken, MoveStrategy
from othello_protocol.engine.board import GameBoard
from othello_protocol.protocol.constants import BOARD_SIZE, Tile
from othello_protocol.protocol.messages import TurnResponse
from othello_protocol.protocol.move_codec import Move

try:
    from rust_reversi import (
        AlphaBetaSearch,
        Board as RustBoard,
        MctsSearch,
        PieceEvaluator,
        ThunderSearch,
        Turn,
        WinrateEvaluator,
    )
except ImportError as exc:  # pragma: no cover - handled at runtime
    raise ImportError("Rust strategies require the 'rust-reversi' package") from exc

logger = logging.getLogger(__name__)

_RUST_SYMBOLS = {Tile.BLACK: "X", Tile.WHITE: "O", Tile.EMPTY: "-"}


class BaseRustSearchStrategy(MoveStrategy, ABC):
    """Shared plumbing for strategies backed by the rust-reversi package."""

    label = "rust"

    def __init__(self, think_delay: float = 0.0):
        super().__init__(think_delay=think_delay)
        self._piece_evaluator = PieceEvaluator()
        self._winrate_evaluator = WinrateEvaluator()

    def _pick_move(
        self,
        board: GameBoard,
        color: Tile,
        valid_moves: List[Move],
        cancel: CancelToken,
    ) -> Optional[TurnResponse]:
        rust_board = self._build_rust_board(board, color)
        search: Any = self._create_search()

        move_index: Optional[int]
        try:
            move_index = search.get_move(rust_board)
        except Exception:
            logger.warning("%s search failed, using first listed move", self.label, exc_info=True)
            move_index = None

        if move_index is None or not self._is_index_valid(move_index):
            return TurnResponse(move=valid_moves[0], notes=f"{self.label} fallback")

        move = self._index_to_move(move_index)
        if move not in valid_moves:
            return TurnResponse(move=valid_moves[0], notes=f"{self.label} fallback")
        return TurnResponse(move=move, notes=self.label)

    @abstractmethod
    def _create_search(self) -> Any:
        """Return a rust_reversi searcher ready to evaluate positions."""

    # ------------------------------------------------------------------
    # Rust board helpers
    # ------------------------------------------------------------------
    def _build_rust_board(self, board: GameBoard, color: Tile) -> RustBoard:
        rust_board = RustBoard()
        turn = Turn.BLACK if color is Tile.BLACK else Turn.WHITE
        rust_board.set_board_str(self._board_to_line(board), turn)
        return rust_board

    @staticmethod
    def _board_to_line(board: GameBoard) -> str:
        return "".join(_RUST_SYMBOLS[piece] for row in board.grid for piece in row)

    @staticmethod
    def _is_index_valid(index: int) -> bool:
        return 0 <= index < BOARD_SIZE * BOARD_SIZE

    @staticmethod
    def _index_to_move(index: int) -> Move:
        row, col = divmod(index, BOARD_SIZE)
        return Move(col=col, row=row)


class RustAlphaBetaStrategy(BaseRustSearchStrategy):
    """Deterministic alpha-beta search implemented in Rust."""

    label = "rust-alpha"

    def __init__(self, search_depth: int = 5, think_delay: float = 0.0, win_score: int = 100_000):
        super().__init__(think_delay=think_delay)
        self.search_depth = max(1, search_depth)
        self._win_score = win_score

    def _create_search(self):
        return AlphaBetaSearch(self._piece_evaluator, self.search_depth, self._win_score)


class RustThunderStrategy(BaseRustSearchStrategy):
    """Epsilon-greedy playout searcher (Thunder)."""

    label = "rust-thunder"

    def __init__(self, think_delay: float = 0.0, playouts: int = 400, epsilon: float = 0.1):
        super().__init__(think_delay=think_delay)
        self.playouts = max(1, playouts)
        self.epsilon = max(0.0, min(1.0, epsilon))

    def _create_search(self):
        return ThunderSearch(self._winrate_evaluator, self.playouts, self.epsilon)


class RustMctsStrategy(BaseRustSearchStrategy):
    """Monte Carlo Tree Search variant from rust-reversi."""

    label = "rust-mcts"

    def __init__(
        self,
        think_delay: float = 0.0,
        playouts: int = 800,
        exploration_constant: float = 1.4,
        expand_threshold: int = 8,
    ):
        super().__init__(think_delay=think_delay)
        self.playouts = max(1, playouts)
        self.exploration_constant = max(1e-6, exploration_constant)
        self.expand_threshold = max(1, expand_threshold)

    def _create_search(self):
        return MctsSearch(
            self.playouts,
            self.exploration_constant,
            self.expand_threshold,
        )
