from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Optional, Tuple

from othello_protocol.engine.base_strategy import CancelToken, MoveStrategy
from othello_protocol.protocol.channel import LineChannel, bounded_timeout
from othello_protocol.protocol.config import EngineConfig, MoveListPolicy, TimeoutPolicy
from othello_protocol.protocol.constants import Tile
from othello_protocol.protocol.errors import MoveNotInList, Timeout
from othello_protocol.protocol.messages import TurnRequest, TurnResponse
from othello_protocol.protocol.move_codec import Move, MoveCodec
from othello_protocol.protocol.version import Session

logger = logging.getLogger(__name__)

PLACEHOLDER_NOTES = "no legal move"


@dataclass(frozen=True)
class TurnOutcome:
    turn: int
    request: TurnRequest
    response: TurnResponse
    elapsed_ms: float
    timed_out: bool = False
    off_list: bool = False


def run_with_deadline(
    strategy: MoveStrategy,
    request: TurnRequest,
    budget: float,
) -> Tuple[Optional[TurnResponse], bool]:
    """Run ``strategy`` on a worker thread for at most ``budget`` seconds.

    Returns ``(response, timed_out)``. A late search is cancelled and
    its eventual result is dropped.
    """
    cancel = CancelToken.after(budget)
    results: "queue.Queue[Tuple[Optional[TurnResponse], Optional[BaseException]]]" = queue.Queue(maxsize=1)

    def search():
        try:
            results.put((strategy.select(request, cancel), None))
        except Exception as exc:
            results.put((None, exc))

    threading.Thread(target=search, name="move-search", daemon=True).start()
    try:
        response, error = results.get(timeout=bounded_timeout(budget))
    except queue.Empty:
        cancel.cancel()
        return None, True

    cancel.cancel()
    if error is not None:
        raise error
    return response, False


def placeholder_move(request: TurnRequest) -> Move:
    """Answer for a turn with an empty move list: the first empty square, or a1."""
    for row_index, row in enumerate(request.board.rows):
        for col_index, tile in enumerate(row):
            if tile is Tile.EMPTY:
                return Move(col=col_index, row=row_index)
    return Move(col=0, row=0)


class TurnSession:
    """One request/response cycle bound to a negotiated session."""

    def __init__(self, session: Session, strategy: MoveStrategy, config: EngineConfig):
        self.session = session
        self.strategy = strategy
        self.config = config

    def execute(self, channel: LineChannel) -> TurnOutcome:
        request = self.receive(channel)
        turn = self.session.next_turn()
        started = time.monotonic()
        response, timed_out, off_list = self.decide(request)
        channel.write_lines(self.session.codec.encode_response(response))
        elapsed_ms = (time.monotonic() - started) * 1000

        logger.info("Turn %d: played %s in %.0f ms", turn, MoveCodec.encode(response.move), elapsed_ms)
        return TurnOutcome(
            turn=turn,
            request=request,
            response=response,
            elapsed_ms=elapsed_ms,
            timed_out=timed_out,
            off_list=off_list,
        )

    def receive(self, channel: LineChannel) -> TurnRequest:
        codec = self.session.codec
        request = codec.decode_request(channel.read_lines(codec.request_line_count))
        logger.debug(
            "Request: next=%s time=%d ms moves=[%s]",
            request.next_player.symbol if request.next_player else "-",
            request.max_time_ms,
            " ".join(request.move_tokens()),
        )
        return request

    def decide(self, request: TurnRequest) -> Tuple[TurnResponse, bool, bool]:
        budget = self.config.search_budget(request.max_time_ms)
        response, timed_out = run_with_deadline(self.strategy, request, budget)

        if timed_out:
            if self.config.timeout_policy is TimeoutPolicy.FORFEIT:
                raise Timeout(request.max_time_ms, "move search did not finish")
            logger.warning("Move search exceeded %d ms, answering with first listed move", request.max_time_ms)

        placeholder = False
        if response is None:
            if request.moves:
                response = TurnResponse(move=request.moves[0], notes="fallback")
            else:
                # nothing legal to play; keep the session in step
                placeholder = True
                response = TurnResponse(move=placeholder_move(request), notes=PLACEHOLDER_NOTES)
                logger.warning("Empty move list and no move chosen, answering %s", MoveCodec.encode(response.move))

        # must survive a round trip through the wire format
        move = MoveCodec.decode(MoveCodec.encode(Move(*response.move)))
        response = TurnResponse(move=move, notes=response.notes)

        off_list = move not in request.moves
        if off_list and not placeholder:
            error = MoveNotInList(MoveCodec.encode(move), " ".join(request.move_tokens()))
            if self.config.move_list_policy is MoveListPolicy.REJECT:
                raise error
            logger.warning("%s", error)
        return response, timed_out, off_list
