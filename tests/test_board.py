from othello_protocol.engine.board import GameBoard, infer_next_player
from othello_protocol.protocol.board_codec import BoardCodec
from othello_protocol.protocol.constants import Tile
from othello_protocol.protocol.move_codec import MoveCodec

from conftest import SCENARIO_BOARD


def _tokens(moves):
    return [MoveCodec.encode(move) for move in moves]


def test_initial_position():
    board = GameBoard()

    assert board.current_player is Tile.BLACK
    assert board.get_score() == {Tile.BLACK: 2, Tile.WHITE: 2}
    assert _tokens(board.get_valid_moves(Tile.BLACK)) == ["d3", "c4", "f5", "e6"]
    assert BoardCodec.encode(board.snapshot())[3:5] == ["...OX...", "...XO..."]


def test_scenario_move_list_matches_rules():
    board = GameBoard.from_snapshot(BoardCodec.decode(SCENARIO_BOARD), Tile.WHITE)

    assert _tokens(board.get_valid_moves(Tile.WHITE)) == ["c3", "e3", "c5"]


def test_play_move_flips_and_hands_over_turn():
    board = GameBoard()

    assert board.play_move(MoveCodec.decode("d3"), Tile.BLACK)

    assert board.current_player is Tile.WHITE
    assert board.get_piece(3, 3) is Tile.BLACK
    assert board.get_score() == {Tile.BLACK: 4, Tile.WHITE: 1}
    assert BoardCodec.encode(board.snapshot()) == SCENARIO_BOARD


def test_illegal_move_is_refused():
    board = GameBoard()

    assert not board.play_move(MoveCodec.decode("a1"), Tile.BLACK)
    assert not board.play_move(MoveCodec.decode("d4"), Tile.BLACK)
    assert board.get_score() == {Tile.BLACK: 2, Tile.WHITE: 2}


def test_pass_turn_only_for_player_to_move():
    board = GameBoard()

    assert not board.pass_turn(Tile.WHITE)
    assert board.pass_turn(Tile.BLACK)
    assert board.current_player is Tile.WHITE


def test_game_over_when_nobody_can_move():
    lines = ["XXXXXXXX"] * 7 + ["XXXXXXX."]
    board = GameBoard.from_snapshot(BoardCodec.decode(lines))

    assert board.is_game_over()
    assert not board.has_valid_move(Tile.WHITE)


def test_clone_is_independent():
    board = GameBoard()
    copy = board.clone()

    copy.play_move(MoveCodec.decode("d3"), Tile.BLACK)

    assert board.get_score() == {Tile.BLACK: 2, Tile.WHITE: 2}
    assert board.snapshot() != copy.snapshot()


def test_infer_next_player_from_move_list():
    board = BoardCodec.decode(SCENARIO_BOARD)
    moves = [MoveCodec.decode(token) for token in ("c3", "e3", "c5")]

    assert infer_next_player(board, moves) is Tile.WHITE
    assert infer_next_player(GameBoard().snapshot(), GameBoard().get_valid_moves(Tile.BLACK)) is Tile.BLACK


def test_infer_next_player_falls_back_to_parity():
    assert infer_next_player(GameBoard().snapshot(), []) is Tile.BLACK
    assert infer_next_player(BoardCodec.decode(SCENARIO_BOARD), []) is Tile.WHITE
