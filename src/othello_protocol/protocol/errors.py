from __future__ import annotations

from typing import Optional


class ProtocolError(Exception):
    """Base class for every failure of the turn exchange protocol."""


class ChannelClosed(ProtocolError):
    """The peer closed the channel between two messages."""


class MalformedMessage(ProtocolError):
    """A message could not be parsed for the active version."""


class IncompleteMessage(MalformedMessage):
    """The channel closed in the middle of a message."""


class MalformedBoard(MalformedMessage):
    """Board lines are not 8 rows of 8 characters from '.', 'X', 'O'."""


class InvalidMoveFormat(MalformedMessage):
    """A move token is not a letter a-h followed by a digit 1-8."""


class MoveCountMismatch(MalformedMessage):
    """The declared move count differs from the number of listed moves."""

    def __init__(self, declared: int, actual: int):
        super().__init__(f"Move list declares {declared} moves but lists {actual}")
        self.declared = declared
        self.actual = actual


class VersionMismatch(ProtocolError):
    """The handshake tag is malformed or not supported."""


class MoveNotInList(ProtocolError):
    """The chosen move is absent from the move list supplied for the turn."""

    def __init__(self, move: str, move_list: str):
        super().__init__(f"Move {move} is not in the move list [{move_list}]")
        self.move = move


class Timeout(ProtocolError):
    """No move was produced within the turn's time limit."""

    def __init__(self, limit_ms: int, detail: str = ""):
        message = f"No move within {limit_ms} ms"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.limit_ms = limit_ms


class NoMoveAvailable(ProtocolError):
    """An in-process player chose no move for a turn it had to play."""


class AIRuntimeError(ProtocolError):
    """The AI program terminated abnormally."""

    def __init__(self, returncode: Optional[int], stderr: str = ""):
        super().__init__(f"AI program exit code was non-zero: {returncode}")
        self.returncode = returncode
        self.stderr = stderr
