import shlex
import sys
import textwrap

import pytest

from othello_protocol.cli.duel import DRAW, PASS, DuelStats, EngineMatch, MatchResult, run_duel_series, run_tournament
from othello_protocol.cli.players import PlayerSpec
from othello_protocol.protocol.constants import Tile

CORNER_GRABBER = """
    import sys
    sys.stdin.read()
    print("a1")
"""

CRASHER = """
    import sys
    sys.stdin.read()
    sys.exit(4)
"""


def _builtin(label, seed=None, strategy="trivial"):
    options = {"rng_seed": seed} if seed is not None else {}
    return PlayerSpec(key=f"builtin:{strategy}", label=label, time_limit_ms=2000, options=options)


def _program(tmp_path, label, source):
    script = tmp_path / f"{label}.py"
    script.write_text(textwrap.dedent(source), encoding="utf-8")
    return PlayerSpec(key=f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}", label=label)


def test_builtin_match_plays_to_the_end():
    result = EngineMatch(_builtin("one", seed=1), _builtin("two", seed=2)).play()

    assert result.forfeit_reason is None
    assert result.color_to_label == {Tile.BLACK: "one", Tile.WHITE: "two"}
    assert result.moves[0][0] is Tile.BLACK
    played = [move for _, move, _ in result.moves if move != PASS]
    assert len(played) == sum(result.scores.values()) - 4
    assert all(notes == "random" for _, move, notes in result.moves if move != PASS)
    if result.scores[Tile.BLACK] == result.scores[Tile.WHITE]:
        assert result.winner_color == DRAW
    else:
        leader = max((Tile.BLACK, Tile.WHITE), key=lambda color: result.scores[color])
        assert result.winner_color is leader


def test_off_list_move_forfeits(tmp_path):
    result = EngineMatch(_program(tmp_path, "grabber", CORNER_GRABBER), _builtin("calm", seed=1)).play()

    assert result.winner_color is Tile.WHITE
    assert "a1" in result.forfeit_reason
    assert result.moves == []
    assert result.scores == {Tile.BLACK: 2, Tile.WHITE: 2}


def test_crashing_program_forfeits(tmp_path):
    result = EngineMatch(_builtin("calm", seed=1), _program(tmp_path, "crasher", CRASHER)).play()

    assert result.winner_color is Tile.BLACK
    assert "4" in result.forfeit_reason
    assert len(result.moves) == 1


def test_points_for_result():
    scores = {Tile.BLACK: 32, Tile.WHITE: 32}
    labels = {Tile.BLACK: "a", Tile.WHITE: "b"}

    draw = MatchResult(winner_color=DRAW, scores=scores, moves=[], color_to_label=labels)
    won = MatchResult(winner_color=Tile.WHITE, scores=scores, moves=[], color_to_label=labels)

    assert draw.points_for(Tile.BLACK) == 0.5
    assert won.points_for(Tile.WHITE) == 1.0
    assert won.points_for(Tile.BLACK) == 0.0


def test_series_swaps_colours():
    stats, results = run_duel_series(_builtin("one", seed=1), _builtin("two", seed=2), games=3)

    assert [result.color_to_label[Tile.BLACK] for result in results] == ["one", "two", "one"]
    assert stats.total_games == 3
    assert sum(stats.points.values()) == pytest.approx(3.0)
    assert stats.games_played == {"one": 3, "two": 3}


def test_series_without_swap_and_same_labels():
    stats, results = run_duel_series(_builtin("same", seed=1), _builtin("same", seed=2), games=2, swap_colors=False)

    assert stats.engine_labels == ["same", "same (2)"]
    assert all(result.color_to_label[Tile.WHITE] == "same (2)" for result in results)


def test_tournament_round_robin():
    specs = [_builtin("a", seed=1), _builtin("b", seed=2), _builtin("c", seed=3)]

    stats, results = run_tournament(specs, concurrency=2)

    assert len(results) == 6
    pairs = {(r.color_to_label[Tile.BLACK], r.color_to_label[Tile.WHITE]) for r in results}
    assert pairs == {("a", "b"), ("b", "a"), ("a", "c"), ("c", "a"), ("b", "c"), ("c", "b")}
    assert stats.games_played == {"a": 4, "b": 4, "c": 4}
    assert [label for label, _ in stats.standings()] == sorted(
        stats.points, key=lambda label: stats.points[label], reverse=True
    )


def test_tournament_rejects_bad_entries():
    with pytest.raises(ValueError):
        run_tournament([_builtin("solo")])
    with pytest.raises(ValueError):
        run_tournament([_builtin("twin"), _builtin("twin")])


def test_stats_count_forfeits(tmp_path):
    stats = DuelStats(["calm", "crasher"])
    stats.record(EngineMatch(_builtin("calm", seed=1), _program(tmp_path, "crasher", CRASHER)).play())

    summary = stats.summary()

    assert summary["total_games"] == 1
    assert summary["engines"]["crasher"]["forfeits"] == 1
    assert summary["engines"]["calm"]["wins"] == 1
    assert stats.standings()[0] == ("calm", 1.0)


def _decided(black, white, winner):
    return MatchResult(
        winner_color=winner,
        scores={Tile.BLACK: 40, Tile.WHITE: 24} if winner is Tile.BLACK else {Tile.BLACK: 24, Tile.WHITE: 40},
        moves=[],
        color_to_label={Tile.BLACK: black, Tile.WHITE: white},
    )


def test_elo_rewards_the_winner():
    stats = DuelStats(["strong", "weak"])
    stats.record(_decided("strong", "weak", Tile.BLACK))
    stats.record(_decided("weak", "strong", Tile.WHITE))

    ratings = stats.elo_ratings()

    assert ratings["strong"] > 1000 > ratings["weak"]
    assert ratings["strong"] + ratings["weak"] == pytest.approx(2000.0)
    assert stats.summary()["engines"]["strong"]["elo"] == pytest.approx(ratings["strong"])


def test_elo_stays_level_after_even_results():
    stats = DuelStats(["a", "b"])
    stats.record(_decided("a", "b", Tile.BLACK))
    stats.record(_decided("b", "a", Tile.BLACK))

    ratings = stats.elo_ratings()

    assert ratings["a"] == pytest.approx(1000.0)
    assert ratings["b"] == pytest.approx(1000.0)
