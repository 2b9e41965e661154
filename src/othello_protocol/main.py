import argparse
import logging
import os
import shutil
import sys
from typing import Any, List, cast

from othello_protocol.cli.duel import DRAW, DuelStats, MatchResult, run_duel_series, run_tournament
from othello_protocol.cli.players import BUILTIN_PREFIX, PlayerSpec
from othello_protocol.engine.registry import build_strategy, get_strategy_choices, strategy_supports_depth
from othello_protocol.protocol.channel import StreamChannel
from othello_protocol.protocol.config import EngineConfig, MoveListPolicy, TimeoutPolicy
from othello_protocol.protocol.constants import KNOWN_VERSIONS, Tile
from othello_protocol.protocol.engine import ProtocolEngine
from othello_protocol.protocol.errors import ProtocolError

STRATEGY_NAMES = sorted(get_strategy_choices().keys())
LEGACY = "legacy"

logger = logging.getLogger("othello_protocol")


def _version_arg(value: str) -> str | None:
    return None if value == LEGACY else value


def run_ai(args: argparse.Namespace) -> int:
    depth = args.depth if strategy_supports_depth(args.strategy) else None
    strategy = build_strategy(args.strategy, search_depth=depth, think_delay=args.delay)
    config = EngineConfig(
        version=_version_arg(args.version),
        timeout_policy=TimeoutPolicy(args.timeout_policy),
        move_list_policy=MoveListPolicy(args.move_list_policy),
        response_margin_ms=args.margin,
    )
    engine = ProtocolEngine(StreamChannel(sys.stdin, sys.stdout), strategy, config)
    try:
        outcomes = engine.run()
    except ProtocolError as exc:
        logger.error("Protocol error: %s", exc)
        return 1
    logger.info("Answered %d turns", len(outcomes))
    return 0


def _player_spec(command: str, label: str | None, args: argparse.Namespace, time_limit: int) -> PlayerSpec:
    if not command.startswith(BUILTIN_PREFIX):
        program = command.split()[0]
        if not (os.path.isfile(program) or shutil.which(program)):
            raise SystemExit(f"Path '{program}' is not valid")
    return PlayerSpec(
        key=command,
        label=label or command,
        time_limit_ms=time_limit,
        version=_version_arg(args.version),
        supported_versions=frozenset(args.supported or KNOWN_VERSIONS),
        search_depth=args.depth,
    )


def _print_results(results: List[MatchResult]):
    print("\nGame results:")
    for index, result in enumerate(results, start=1):
        black_label = result.color_to_label.get(Tile.BLACK, "BLACK")
        white_label = result.color_to_label.get(Tile.WHITE, "WHITE")
        black_score = result.scores.get(Tile.BLACK, 0)
        white_score = result.scores.get(Tile.WHITE, 0)
        if result.winner_color == DRAW:
            verdict = "Draw"
        else:
            verdict = f"Winner: {result.color_to_label.get(result.winner_color, result.winner_color)}"
        if result.forfeit_reason:
            verdict = f"{verdict} (forfeit: {result.forfeit_reason.splitlines()[0]})"
        print(
            f"Game {index}: {black_label} (Black) {black_score} - "
            f"{white_label} (White) {white_score} | {verdict}"
        )


def _print_summary(stats: DuelStats):
    summary: dict[str, Any] = stats.summary()
    engines = cast(dict[str, Any], summary["engines"])
    print(f"\nComplete: {summary['total_games']} games, {summary['draws']} draws.")
    print(f"Average moves per game: {summary['average_moves']:.2f}")
    print(f"\n{'Elo':>4} {'Score':>6} Player")
    for label, points in stats.standings():
        data = engines[label]
        print(
            f"{data['elo']:>4.0f} {points:>6.1f} {label}: {data['wins']} wins / {data['games']} games, "
            f"{data['forfeits']} forfeits, avg margin {data['avg_margin']:+.2f}"
        )


def run_duel(args: argparse.Namespace) -> int:
    black_spec = _player_spec(args.black, args.black_label, args, args.black_time)
    white_spec = _player_spec(args.white, args.white_label, args, args.white_time)

    stats, results = run_duel_series(
        black_spec=black_spec,
        white_spec=white_spec,
        games=max(1, args.games),
        swap_colors=not args.no_swap,
        concurrency=max(1, args.concurrency),
    )
    _print_results(results)
    _print_summary(stats)
    return 0


def read_ai_list(path: str) -> List[str]:
    """Read one player per line; program paths are relative to the list file."""
    base = os.path.dirname(os.path.abspath(path))
    with open(path, "r", encoding="utf-8") as fh:
        entries = [line.strip() for line in fh if line.strip()]
    return [entry if entry.startswith(BUILTIN_PREFIX) else os.path.join(base, entry) for entry in entries]


def run_tournament_mode(args: argparse.Namespace) -> int:
    entries = read_ai_list(args.ai_list)
    if len(entries) < 2:
        raise SystemExit("AI list must name at least two players")
    if len(set(entries)) != len(entries):
        raise SystemExit("AI list contains duplicate elements")

    specs = [_player_spec(entry, None, args, args.time) for entry in entries]
    stats, results = run_tournament(specs, concurrency=max(1, args.concurrency))
    _print_results(results)
    _print_summary(stats)
    return 0


def _add_match_options(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--version",
        default=LEGACY,
        help="Protocol version programs announce, or 'legacy' for one process per turn (default: legacy)",
    )
    parser.add_argument(
        "--supported",
        nargs="+",
        metavar="TAG",
        help=f"Version tags accepted in the handshake (default: {' '.join(KNOWN_VERSIONS)})",
    )
    parser.add_argument("--depth", type=int, default=None, help="Search depth for builtin strategies")
    parser.add_argument("--concurrency", type=int, default=1, help="Games played at once (default: 1)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Othello GUI/AI turn protocol tools")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Diagnostics written to stderr (default: WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ai_parser = subparsers.add_parser("ai", help="Answer turns on stdin/stdout with a builtin strategy")
    ai_parser.add_argument("--strategy", choices=STRATEGY_NAMES, default="minimax")
    ai_parser.add_argument("--depth", type=int, default=3, help="Search depth when supported")
    ai_parser.add_argument("--delay", type=float, default=0.0, help="Think delay in seconds")
    ai_parser.add_argument(
        "--version",
        default=LEGACY,
        help="Version tag to announce, or 'legacy' to skip the handshake (default: legacy)",
    )
    ai_parser.add_argument(
        "--timeout-policy",
        choices=[policy.value for policy in TimeoutPolicy],
        default=TimeoutPolicy.FALLBACK.value,
    )
    ai_parser.add_argument(
        "--move-list-policy",
        choices=[policy.value for policy in MoveListPolicy],
        default=MoveListPolicy.REPORT.value,
    )
    ai_parser.add_argument("--margin", type=int, default=50, help="Milliseconds kept back for I/O")
    ai_parser.set_defaults(func=run_ai)

    duel_parser = subparsers.add_parser("duel", help="Compare two players over several games")
    duel_parser.add_argument("black", help="Program command or builtin:<strategy> playing black first")
    duel_parser.add_argument("white", help="Program command or builtin:<strategy> playing white first")
    duel_parser.add_argument("--black-label")
    duel_parser.add_argument("--white-label")
    duel_parser.add_argument("--black-time", type=int, default=1000, help="Black time limit in ms")
    duel_parser.add_argument("--white-time", type=int, default=1000, help="White time limit in ms")
    duel_parser.add_argument("--games", type=int, default=2, help="Number of games to run (default: 2)")
    duel_parser.add_argument("--no-swap", action="store_true", help="Disable color swapping between games")
    _add_match_options(duel_parser)
    duel_parser.set_defaults(func=run_duel)

    tournament_parser = subparsers.add_parser("tournament", help="Round robin between listed players")
    tournament_parser.add_argument("ai_list", help="File with one program path or builtin:<strategy> per line")
    tournament_parser.add_argument("--time", type=int, default=1000, help="Time limit per move in ms")
    _add_match_options(tournament_parser)
    tournament_parser.set_defaults(func=run_tournament_mode)

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if hasattr(args, "func"):
        for name in ("black_time", "white_time", "time"):
            if getattr(args, name, 1) <= 0:
                parser.error("time limits must be positive")
        return args.func(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
