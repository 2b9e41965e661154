from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TimeoutPolicy(Enum):
    FALLBACK = "fallback"   # answer with the first listed move
    FORFEIT = "forfeit"     # raise Timeout to the surrounding application


class MoveListPolicy(Enum):
    REPORT = "report"   # log the off-list move and carry on
    REJECT = "reject"   # raise MoveNotInList


@dataclass(frozen=True)
class EngineConfig:
    """AI-side settings for a protocol engine run."""

    version: Optional[str] = None
    timeout_policy: TimeoutPolicy = TimeoutPolicy.FALLBACK
    move_list_policy: MoveListPolicy = MoveListPolicy.REPORT
    response_margin_ms: int = 50

    def search_budget(self, max_time_ms: int) -> float:
        """Seconds the move search may use for a turn limited to ``max_time_ms``."""
        return max(0, max_time_ms - self.response_margin_ms) / 1000.0
