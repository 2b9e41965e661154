import io
import sys

import pytest

from othello_protocol.main import build_parser, main, read_ai_list

from conftest import scenario_request_lines


def _feed(monkeypatch, lines):
    out = io.StringIO()
    monkeypatch.setattr(sys, "stdin", io.StringIO("".join(f"{line}\n" for line in lines)))
    monkeypatch.setattr(sys, "stdout", out)
    return out


def test_parser_defaults():
    args = build_parser().parse_args(["ai"])

    assert args.strategy == "minimax"
    assert args.version == "legacy"
    assert args.timeout_policy == "fallback"
    assert args.move_list_policy == "report"
    assert args.margin == 50


def test_ai_command_answers_legacy_turns(monkeypatch):
    out = _feed(monkeypatch, scenario_request_lines() * 2)

    assert main(["ai", "--strategy", "trivial"]) == 0

    lines = out.getvalue().splitlines()
    assert len(lines) == 4
    assert lines[0] in {"c3", "e3", "c5"}
    assert lines[1] == "random"


def test_ai_command_announces_version(monkeypatch):
    out = _feed(monkeypatch, scenario_request_lines(next_player=None))

    assert main(["ai", "--strategy", "minimax", "--depth", "1", "--version", "v1.0.0"]) == 0

    lines = out.getvalue().splitlines()
    assert lines[0] == "v1.0.0"
    assert lines[1] in {"c3", "e3", "c5"}
    assert len(lines) == 2


def test_ai_command_reports_protocol_errors(monkeypatch):
    _feed(monkeypatch, scenario_request_lines(moves="4 c3 e3 c5"))

    assert main(["ai", "--strategy", "trivial"]) == 1


def test_duel_command_prints_summary(capsys):
    code = main(["duel", "builtin:trivial", "builtin:random", "--games", "2", "--black-label", "t1", "--white-label", "t2"])

    output = capsys.readouterr().out
    assert code == 0
    assert "Game 1: t1 (Black)" in output
    assert "Game 2: t2 (Black)" in output
    assert "Complete: 2 games" in output


def test_duel_rejects_missing_program(tmp_path):
    with pytest.raises(SystemExit):
        main(["duel", str(tmp_path / "missing-ai"), "builtin:trivial"])


def test_time_limits_must_be_positive():
    with pytest.raises(SystemExit):
        main(["duel", "builtin:trivial", "builtin:trivial", "--black-time", "0"])


def test_read_ai_list_resolves_relative_paths(tmp_path):
    listing = tmp_path / "lists" / "ais.txt"
    listing.parent.mkdir()
    listing.write_text("bots/alpha\n\nbuiltin:minimax\n  bots/beta  \n", encoding="utf-8")

    entries = read_ai_list(str(listing))

    assert entries == [
        str(listing.parent / "bots" / "alpha"),
        "builtin:minimax",
        str(listing.parent / "bots" / "beta"),
    ]


def test_tournament_command(tmp_path, capsys):
    listing = tmp_path / "ais.txt"
    listing.write_text("builtin:trivial\nbuiltin:random\n", encoding="utf-8")

    assert main(["tournament", str(listing), "--time", "2000"]) == 0

    output = capsys.readouterr().out
    assert "Complete: 2 games" in output
    assert " Elo  Score Player" in output


def test_tournament_needs_two_players(tmp_path):
    listing = tmp_path / "ais.txt"
    listing.write_text("builtin:trivial\n", encoding="utf-8")

    with pytest.raises(SystemExit):
        main(["tournament", str(listing)])
