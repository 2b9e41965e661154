from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import Any, Dict, Type

from othello_protocol.engine.base_strategy import MoveStrategy

_PACKAGE = "othello_protocol.engine"


@dataclass(frozen=True)
class StrategyEntry:
    module: str
    class_name: str
    supports_depth: bool
    description: str

    def load(self) -> Type[MoveStrategy]:
        # rust-backed strategies import their extension only when chosen
        module = importlib.import_module(f"{_PACKAGE}.{self.module}")
        return getattr(module, self.class_name)


STRATEGY_REGISTRY: Dict[str, StrategyEntry] = {
    "minimax": StrategyEntry(
        "minimax_strategy", "MinimaxStrategy", True,
        "Built-in minimax with alpha-beta pruning and light randomization.",
    ),
    "rust-alpha": StrategyEntry(
        "rust_strategy", "RustAlphaBetaStrategy", True,
        "Deterministic alpha-beta search implemented in Rust.",
    ),
    "rust-thunder": StrategyEntry(
        "rust_strategy", "RustThunderStrategy", False,
        "Epsilon-greedy playout search with randomness.",
    ),
    "rust-mcts": StrategyEntry(
        "rust_strategy", "RustMctsStrategy", False,
        "Monte Carlo tree search variant from rust-reversi.",
    ),
    "trivial": StrategyEntry(
        "trivial_strategy", "TrivialStrategy", False,
        "Random legal move generator useful for debugging.",
    ),
}

STRATEGY_ALIASES: Dict[str, str] = {"rust": "rust-alpha", "random": "trivial"}


def resolve_strategy_key(key: str) -> str:
    return STRATEGY_ALIASES.get(key, key)


def get_strategy_choices() -> Dict[str, StrategyEntry]:
    """Return mapping of canonical strategy key to its entry."""
    return dict(STRATEGY_REGISTRY)


def _get_entry(name: str) -> StrategyEntry:
    entry = STRATEGY_REGISTRY.get(resolve_strategy_key(name))
    if not entry:
        raise ValueError(f"Unknown strategy '{name}'")
    return entry


def strategy_supports_depth(name: str) -> bool:
    return _get_entry(name).supports_depth


def build_strategy(
    name: str,
    search_depth: int | None = None,
    think_delay: float | None = None,
    **strategy_options: Any,
) -> MoveStrategy:
    entry = _get_entry(name)
    strategy_cls = entry.load()
    kwargs: Dict[str, Any] = {}
    if think_delay is not None:
        kwargs["think_delay"] = think_delay
    if entry.supports_depth and search_depth is not None:
        kwargs["search_depth"] = search_depth
    if strategy_options:
        kwargs.update(strategy_options)
    return strategy_cls(**kwargs)
