from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from typing import List, Optional

from othello_protocol.engine.board import GameBoard, infer_next_player
from othello_protocol.protocol.channel import bounded_timeout
from othello_protocol.protocol.constants import Tile
from othello_protocol.protocol.messages import TurnRequest, TurnResponse
from othello_protocol.protocol.move_codec import Move


class CancelToken:
    """Cancellation flag shared between a turn and its move search.

    The search polls ``cancelled``; the turn sets it when the deadline
    passes or the result is no longer wanted.
    """

    def __init__(self, deadline: Optional[float] = None):
        self.deadline = deadline
        self._event = threading.Event()

    @classmethod
    def after(cls, seconds: float) -> "CancelToken":
        return cls(time.monotonic() + max(0.0, seconds))

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if cancelled meanwhile."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        return self._event.wait(bounded_timeout(seconds)) or self.cancelled


class MoveStrategy(ABC):
    """Move-selection collaborator driven by a turn session."""

    def __init__(self, think_delay: float = 0.0):
        self.think_delay = think_delay

    def select(self, request: TurnRequest, cancel: CancelToken) -> Optional[TurnResponse]:
        if self.think_delay and cancel.wait(self.think_delay):
            return None
        if not request.moves:
            return None

        color = request.next_player or infer_next_player(request.board, request.moves)
        board = GameBoard.from_snapshot(request.board, color)
        return self._pick_move(board, color, list(request.moves), cancel)

    @abstractmethod
    def _pick_move(
        self,
        board: GameBoard,
        color: Tile,
        valid_moves: List[Move],
        cancel: CancelToken,
    ) -> Optional[TurnResponse]:
        """Return the chosen move (with optional notes) or None to force fallback."""
