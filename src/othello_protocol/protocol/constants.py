from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


BOARD_SIZE = 8


class Tile(Enum):
    EMPTY = "."
    BLACK = "X"
    WHITE = "O"

    @property
    def symbol(self) -> str:
        return self.value

    def opponent(self) -> "Tile":
        if self is Tile.BLACK:
            return Tile.WHITE
        if self is Tile.WHITE:
            return Tile.BLACK
        raise ValueError("Empty tile has no opponent")


class Version:
    LEGACY = None       # no handshake, notes allowed
    V1_0_0 = "v1.0.0"   # no next-player line
    V2_0_0_RC1 = "v2.0.0-rc1"


KNOWN_VERSIONS = (Version.V1_0_0, Version.V2_0_0_RC1)


@dataclass(frozen=True)
class MessageShape:
    """Field presence for one protocol version."""

    name: str
    has_next_player: bool
    allows_notes: bool

    @property
    def request_line_count(self) -> int:
        # board + [next player] + max time + move list
        return BOARD_SIZE + (1 if self.has_next_player else 0) + 2

    @property
    def max_response_lines(self) -> int:
        return 2 if self.allows_notes else 1


LEGACY_SHAPE = MessageShape(name="legacy", has_next_player=True, allows_notes=True)
V1_SHAPE = MessageShape(name="v1", has_next_player=False, allows_notes=False)
V2_SHAPE = MessageShape(name="v2", has_next_player=True, allows_notes=False)

_SHAPES: Dict[str, MessageShape] = {
    Version.V1_0_0: V1_SHAPE,
    Version.V2_0_0_RC1: V2_SHAPE,
}


def shape_for(version: str | None) -> MessageShape:
    """Return the message shape for a version tag (``None`` is legacy)."""
    if version is None:
        return LEGACY_SHAPE
    # later versions keep the v2 layout
    return _SHAPES.get(version, V2_SHAPE)
