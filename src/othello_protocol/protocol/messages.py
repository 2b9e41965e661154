from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from othello_protocol.protocol.board_codec import Board, BoardCodec
from othello_protocol.protocol.constants import BOARD_SIZE, MessageShape, Tile, shape_for
from othello_protocol.protocol.errors import MalformedMessage, MoveCountMismatch
from othello_protocol.protocol.move_codec import Move, MoveCodec

_PLAYERS = {Tile.BLACK.symbol: Tile.BLACK, Tile.WHITE.symbol: Tile.WHITE}


@dataclass(frozen=True)
class TurnRequest:
    board: Board
    max_time_ms: int
    moves: Tuple[Move, ...]
    next_player: Optional[Tile] = None

    def move_tokens(self) -> List[str]:
        return [MoveCodec.encode(move) for move in self.moves]


@dataclass(frozen=True)
class TurnResponse:
    move: Move
    notes: Optional[str] = None


class MessageCodec:
    """Encodes and parses whole turn messages for one protocol version."""

    def __init__(self, version: str | None):
        self.version = version
        self.shape: MessageShape = shape_for(version)

    # ------------------------------------------------------------------
    # GUI -> AI
    # ------------------------------------------------------------------
    @property
    def request_line_count(self) -> int:
        return self.shape.request_line_count

    def encode_request(self, request: TurnRequest) -> List[str]:
        lines = BoardCodec.encode(request.board)
        if self.shape.has_next_player:
            if request.next_player not in _PLAYERS.values():
                raise ValueError(f"{self.shape.name} requests need a next player, got {request.next_player}")
            lines.append(request.next_player.symbol)
        if request.max_time_ms < 0:
            raise ValueError("max_time_ms must be non-negative")
        lines.append(str(request.max_time_ms))
        lines.append(" ".join([str(len(request.moves))] + request.move_tokens()))
        return lines

    def decode_request(self, lines: Sequence[str]) -> TurnRequest:
        lines = [line.rstrip("\r\n") for line in lines]
        if len(lines) != self.request_line_count:
            raise MalformedMessage(
                f"{self.shape.name} request needs {self.request_line_count} lines, got {len(lines)}"
            )

        board = BoardCodec.decode(lines[:BOARD_SIZE])
        cursor = BOARD_SIZE

        next_player = None
        if self.shape.has_next_player:
            next_player = self._parse_next_player(lines[cursor])
            cursor += 1

        max_time_ms = self._parse_max_time(lines[cursor])
        moves = self.parse_move_list(lines[cursor + 1])
        return TurnRequest(board=board, max_time_ms=max_time_ms, moves=moves, next_player=next_player)

    @staticmethod
    def parse_move_list(line: str) -> Tuple[Move, ...]:
        tokens = line.split()
        if not tokens:
            raise MalformedMessage("Move list line is empty")
        try:
            declared = int(tokens[0])
        except ValueError as exc:
            raise MalformedMessage(f"Move count {tokens[0]!r} is not an integer") from exc
        if declared < 0:
            raise MalformedMessage(f"Move count {declared} is negative")

        listed = tokens[1:]
        if declared != len(listed):
            raise MoveCountMismatch(declared, len(listed))
        return tuple(MoveCodec.decode(token) for token in listed)

    @staticmethod
    def _parse_next_player(line: str) -> Tile:
        player = _PLAYERS.get(line.strip())
        if player is None:
            raise MalformedMessage(f"Next player {line!r} must be 'X' or 'O'")
        return player

    @staticmethod
    def _parse_max_time(line: str) -> int:
        text = line.strip()
        if not (text.isascii() and text.isdigit()):
            raise MalformedMessage(f"Max time {line!r} is not a non-negative integer")
        return int(text)

    # ------------------------------------------------------------------
    # AI -> GUI
    # ------------------------------------------------------------------
    def encode_response(self, response: TurnResponse) -> List[str]:
        lines = [MoveCodec.encode(response.move)]
        if self.shape.allows_notes and response.notes:
            lines.append(" ".join(response.notes.split()))
        return lines

    def decode_response(self, lines: Sequence[str]) -> TurnResponse:
        stripped = [line.strip() for line in lines]
        # blank lines around the answer are ignored
        while stripped and not stripped[-1]:
            stripped.pop()
        while stripped and not stripped[0]:
            stripped.pop(0)
        if not stripped:
            raise MalformedMessage("Response is empty")
        if len(stripped) > self.shape.max_response_lines:
            raise MalformedMessage(
                f"Output contains {len(stripped)} lines, {self.shape.name} responses allow "
                f"at most {self.shape.max_response_lines}"
            )

        move = MoveCodec.decode(stripped[0])
        notes = stripped[1] if len(stripped) == 2 else None
        return TurnResponse(move=move, notes=notes)
