from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from othello_protocol.cli.players import Player, PlayerSpec, build_player
from othello_protocol.engine.board import GameBoard
from othello_protocol.protocol.constants import Tile
from othello_protocol.protocol.errors import MoveNotInList, ProtocolError
from othello_protocol.protocol.messages import TurnRequest
from othello_protocol.protocol.move_codec import MoveCodec

logger = logging.getLogger(__name__)

DRAW = "DRAW"
PASS = "PASS"

ELO_START = 1000.0
ELO_K = 16.0
ELO_ITERATIONS = 50


@dataclass
class MatchResult:
    winner_color: Tile | str
    scores: Dict[Tile, int]
    moves: List[Tuple[Tile, str, Optional[str]]]
    color_to_label: Dict[Tile, str]
    forfeit_reason: str | None = None

    def points_for(self, color: Tile) -> float:
        if self.winner_color == DRAW:
            return 0.5
        return 1.0 if self.winner_color is color else 0.0


class EngineMatch:
    """Plays one game between two players, the GUI side of the protocol."""

    def __init__(self, black_spec: PlayerSpec, white_spec: PlayerSpec, game_id: int = 0):
        self.game_id = game_id
        self.specs = {Tile.BLACK: black_spec, Tile.WHITE: white_spec}
        self.players: Dict[Tile, Player] = {}

    def play(self) -> MatchResult:
        board = GameBoard()
        move_log: List[Tuple[Tile, str, Optional[str]]] = []
        forfeit: Optional[Tuple[Tile, str]] = None

        try:
            for color, spec in self.specs.items():
                self.players[color] = build_player(spec)
            for color, player in self.players.items():
                try:
                    player.start()
                except ProtocolError as exc:
                    forfeit = (color, str(exc))
                    break

            while forfeit is None and not board.is_game_over():
                color = board.current_player
                valid_moves = board.get_valid_moves(color)
                if not valid_moves:
                    board.pass_turn(color)
                    move_log.append((color, PASS, None))
                    continue

                try:
                    move_str, notes = self._play_turn(board, color, valid_moves)
                except ProtocolError as exc:
                    forfeit = (color, str(exc))
                    break
                move_log.append((color, move_str, notes))
                logger.info("#%03d %s: %s (%s)", self.game_id, color.symbol, move_str, notes or "no notes provided")
        finally:
            for player in self.players.values():
                player.stop()

        scores = board.get_score()
        color_to_label = {color: spec.label for color, spec in self.specs.items()}
        if forfeit is not None:
            loser, reason = forfeit
            logger.warning("#%03d Player %s (%s) Error: %s", self.game_id, loser.symbol, color_to_label[loser], reason)
            return MatchResult(
                winner_color=loser.opponent(),
                scores=scores,
                moves=move_log,
                color_to_label=color_to_label,
                forfeit_reason=reason,
            )

        winner_color = self._determine_winner(scores)
        logger.info("#%03d Game ended, winner: %s", self.game_id, getattr(winner_color, "symbol", winner_color))
        return MatchResult(winner_color=winner_color, scores=scores, moves=move_log, color_to_label=color_to_label)

    def _play_turn(self, board: GameBoard, color: Tile, valid_moves) -> Tuple[str, Optional[str]]:
        player = self.players[color]
        request = TurnRequest(
            board=board.snapshot(),
            max_time_ms=player.time_limit_ms,
            moves=tuple(valid_moves),
            next_player=color,
        )
        response = player.request_move(request)
        move_str = MoveCodec.encode(response.move)
        if response.move not in valid_moves or not board.play_move(response.move, color):
            raise MoveNotInList(move_str, " ".join(request.move_tokens()))
        return move_str, response.notes

    @staticmethod
    def _determine_winner(scores: Dict[Tile, int]) -> Tile | str:
        black = scores.get(Tile.BLACK, 0)
        white = scores.get(Tile.WHITE, 0)
        if black > white:
            return Tile.BLACK
        if white > black:
            return Tile.WHITE
        return DRAW


class DuelStats:
    def __init__(self, engine_labels: List[str]):
        self.engine_labels = engine_labels
        self.wins = {label: 0 for label in engine_labels}
        self.points = {label: 0.0 for label in engine_labels}
        self.forfeits = {label: 0 for label in engine_labels}
        self.draws = 0
        self.score_totals = {label: 0 for label in engine_labels}
        self.score_diff_totals = {label: 0 for label in engine_labels}
        self.games_played = {label: 0 for label in engine_labels}
        self.total_games = 0
        self.total_moves = 0
        self.games: List[Tuple[str, str, float]] = []

    def record(self, result: MatchResult):
        self.total_games += 1
        self.total_moves += len(result.moves)
        self.games.append(
            (result.color_to_label[Tile.BLACK], result.color_to_label[Tile.WHITE], result.points_for(Tile.BLACK))
        )
        for color in (Tile.BLACK, Tile.WHITE):
            label = result.color_to_label[color]
            opponent = color.opponent()
            self.games_played[label] += 1
            self.points[label] += result.points_for(color)
            self.score_totals[label] += result.scores[color]
            self.score_diff_totals[label] += result.scores[color] - result.scores[opponent]

        if result.winner_color == DRAW:
            self.draws += 1
        else:
            winner_label = result.color_to_label[result.winner_color]
            self.wins[winner_label] += 1
            if result.forfeit_reason is not None:
                self.forfeits[result.color_to_label[result.winner_color.opponent()]] += 1

    def elo_ratings(self, iterations: int = ELO_ITERATIONS, k: float = ELO_K) -> Dict[str, float]:
        """Ratings from repeated rating periods over the whole game list.

        Each pass rates every player against its opponents' previous ratings.
        """
        ratings = {label: ELO_START for label in self.engine_labels}
        for _ in range(iterations):
            updated = dict(ratings)
            for label in self.engine_labels:
                delta = 0.0
                for black, white, black_points in self.games:
                    if label == black:
                        opponent, outcome = white, black_points
                    elif label == white:
                        opponent, outcome = black, 1.0 - black_points
                    else:
                        continue
                    expected = 1.0 / (1.0 + 10 ** ((ratings[opponent] - ratings[label]) / 400.0))
                    delta += outcome - expected
                updated[label] = ratings[label] + k * delta
            ratings = updated
        return ratings

    def standings(self) -> List[Tuple[str, float]]:
        return sorted(self.points.items(), key=lambda item: item[1], reverse=True)

    def summary(self) -> Dict[str, object]:
        averages = {}
        elos = self.elo_ratings()
        for label in self.engine_labels:
            games = max(1, self.games_played[label])
            averages[label] = {
                "points": self.points[label],
                "avg_score": self.score_totals[label] / games,
                "avg_margin": self.score_diff_totals[label] / games,
                "wins": self.wins[label],
                "forfeits": self.forfeits[label],
                "games": self.games_played[label],
                "elo": elos[label],
            }
        return {
            "total_games": self.total_games,
            "draws": self.draws,
            "average_moves": self.total_moves / self.total_games if self.total_games else 0.0,
            "engines": averages,
        }


def _play_all(pairings: Sequence[Tuple[PlayerSpec, PlayerSpec]], concurrency: int) -> List[MatchResult]:
    matches = [EngineMatch(black, white, game_id=index) for index, (black, white) in enumerate(pairings)]
    if concurrency <= 1:
        return [match.play() for match in matches]
    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        return list(pool.map(lambda match: match.play(), matches))


def run_duel_series(
    black_spec: PlayerSpec,
    white_spec: PlayerSpec,
    games: int = 1,
    swap_colors: bool = True,
    concurrency: int = 1,
) -> Tuple[DuelStats, List[MatchResult]]:
    if black_spec.label == white_spec.label:
        white_spec = replace(white_spec, label=f"{white_spec.label} (2)")
    labels = [black_spec.label, white_spec.label]

    pairings = []
    for game_index in range(games):
        if swap_colors and game_index % 2 == 1:
            pairings.append((white_spec, black_spec))
        else:
            pairings.append((black_spec, white_spec))

    stats = DuelStats(labels)
    results = _play_all(pairings, concurrency)
    for result in results:
        stats.record(result)
    return stats, results


def run_tournament(specs: Sequence[PlayerSpec], concurrency: int = 1) -> Tuple[DuelStats, List[MatchResult]]:
    """Every player meets every other twice, once with each colour."""
    labels = [spec.label for spec in specs]
    if len(specs) < 2:
        raise ValueError("A tournament needs at least two players")
    if len(set(labels)) != len(labels):
        raise ValueError("Tournament player labels must be unique")

    pairings = []
    for index, first in enumerate(specs):
        for second in specs[index + 1:]:
            pairings.append((first, second))
            pairings.append((second, first))

    stats = DuelStats(labels)
    results = _play_all(pairings, concurrency)
    for result in results:
        stats.record(result)
    return stats, results
