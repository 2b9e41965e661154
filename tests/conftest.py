import io
import time
from typing import List, Optional

import pytest

from othello_protocol.engine.base_strategy import CancelToken, MoveStrategy
from othello_protocol.protocol.channel import StreamChannel
from othello_protocol.protocol.messages import TurnRequest, TurnResponse
from othello_protocol.protocol.move_codec import MoveCodec

SCENARIO_BOARD = [
    "........",
    "........",
    "...X....",
    "...XX...",
    "...XO...",
    "........",
    "........",
    "........",
]


class ScriptedStrategy(MoveStrategy):
    """Answers with fixed tokens and remembers every request it saw."""

    def __init__(self, *tokens: Optional[str], notes: Optional[str] = None, sleep: float = 0.0):
        super().__init__()
        self.tokens = list(tokens)
        self.notes = notes
        self.sleep = sleep
        self.requests: List[TurnRequest] = []

    def select(self, request: TurnRequest, cancel: CancelToken) -> Optional[TurnResponse]:
        self.requests.append(request)
        if self.sleep:
            # ignores cancellation, like a search that never polls
            time.sleep(self.sleep)
        token = self.tokens.pop(0) if self.tokens else None
        if token is None:
            return None
        return TurnResponse(move=MoveCodec.decode(token), notes=self.notes)

    def _pick_move(self, board, color, valid_moves, cancel):
        raise AssertionError("select is overridden")


def scenario_request_lines(next_player: Optional[str] = "O", moves: str = "3 c3 e3 c5") -> List[str]:
    lines = list(SCENARIO_BOARD)
    if next_player is not None:
        lines.append(next_player)
    lines.extend(["3000", moves])
    return lines


def make_channel(lines: List[str]):
    """Return a channel fed with ``lines`` and the buffer it writes to."""
    reader = io.StringIO("".join(f"{line}\n" for line in lines))
    writer = io.StringIO()
    return StreamChannel(reader, writer), writer


@pytest.fixture
def scenario_lines():
    return scenario_request_lines()
