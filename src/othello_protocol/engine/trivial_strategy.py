import random
from typing import List, Optional

from othello_protocol.engine.base_strategy import CancelToken, MoveStrategy
from othello_protocol.engine.board import GameBoard
from othello_protocol.protocol.constants import Tile
from othello_protocol.protocol.messages import TurnResponse
from othello_protocol.protocol.move_codec import Move


class TrivialStrategy(MoveStrategy):
    """Random-move strategy used for testing and baseline comparisons."""

    def __init__(self, think_delay: float = 0.0, rng_seed: int | None = None):
        super().__init__(think_delay=think_delay)
        self._rng = random.Random(rng_seed)

    def _pick_move(
        self,
        board: GameBoard,
        color: Tile,
        valid_moves: List[Move],
        cancel: CancelToken,
    ) -> Optional[TurnResponse]:
        return TurnResponse(move=self._rng.choice(valid_moves), notes="random")
