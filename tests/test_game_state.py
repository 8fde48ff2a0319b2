import json
import logging

import pytest

from engine.constants import BLACK, WHITE
from engine.errors import GameAlreadyOver, IllegalMove, InvalidSquare, PositionError
from engine.game_state import (
    CHECKMATE,
    DRAW,
    FIFTY_MOVE_RULE,
    INSUFFICIENT_MATERIAL,
    ONGOING,
    STALEMATE,
    THREEFOLD_REPETITION,
    GameState,
)


def play(state: GameState, *pairs: str) -> GameState:
    for pair in pairs:
        state.request_move(pair[:2], pair[2:4], pair[4:] or None)
    return state


def test_new_game_is_ongoing() -> None:
    state = GameState.new()
    assert state.result.outcome == ONGOING
    assert not state.is_game_over
    assert state.status_text() == "White to move. Your move."
    assert len(state.legal_moves()) == 20


def test_fools_mate_is_checkmate_for_black() -> None:
    state = play(GameState.new(), "f2f3", "e7e5", "g2g4", "d8h4")
    assert state.result.outcome == CHECKMATE
    assert state.result.winner == BLACK
    assert state.result.reason == "Checkmate"
    assert state.move_history == ["f3", "e5", "g4", "Qh4#"]
    assert state.status_text() == "Checkmate. Black wins. Computer wins."
    assert state.legal_targets("e2") == []


def test_moves_after_game_over_are_refused() -> None:
    state = play(GameState.new(), "f2f3", "e7e5", "g2g4", "d8h4")
    with pytest.raises(GameAlreadyOver):
        state.request_move("e2", "e4")
    move = GameState.new().find_move("e2", "e4")
    with pytest.raises(GameAlreadyOver):
        state.apply_move(move)
    assert len(state.move_history) == 4


def test_stalemate_by_queen_move() -> None:
    state = GameState.from_fen("7k/8/6K1/8/8/8/5Q2/8 w - - 0 1")
    play(state, "f2f7")
    assert state.result.outcome == STALEMATE
    assert state.result.winner is None
    assert state.move_history == ["Qf7"]
    assert state.status_text() == "Draw by stalemate."


def test_threefold_repetition_by_knight_shuffle() -> None:
    state = GameState.new()
    shuffle = ("g1f3", "g8f6", "f3g1", "f6g8")
    play(state, *shuffle)
    assert state.result.outcome == ONGOING
    play(state, *shuffle)
    assert state.result.outcome == DRAW
    assert state.result.reason == THREEFOLD_REPETITION
    assert state.status_text() == "Draw: Threefold repetition."


def test_fifty_move_rule_on_hundredth_quiet_halfmove() -> None:
    state = GameState.from_fen("4k3/8/8/8/8/8/8/R3K3 w - - 99 80")
    assert state.result.outcome == ONGOING
    play(state, "a1a2")
    assert state.position.halfmove_clock == 100
    assert state.result.outcome == DRAW
    assert state.result.reason == FIFTY_MOVE_RULE


def test_capture_into_bare_kings_is_a_draw() -> None:
    state = GameState.from_fen("4k3/8/8/8/8/8/4r3/4K3 w - - 0 1")
    play(state, "e1e2")
    assert state.move_history == ["Kxe2"]
    assert state.result.outcome == DRAW
    assert state.result.reason == INSUFFICIENT_MATERIAL


@pytest.mark.parametrize(
    "fen, insufficient",
    [
        ("4k3/8/8/8/8/8/8/4K3 w - - 0 1", True),
        ("4k3/8/8/8/8/8/8/2B1K3 w - - 0 1", True),
        ("4k3/8/8/8/8/8/8/4K1N1 w - - 0 1", True),
        ("2b1k3/8/8/8/8/8/8/2B1K3 w - - 0 1", True),
        ("1n2k3/8/8/8/8/8/8/4K1N1 w - - 0 1", False),
        ("4k3/8/8/8/8/8/8/R3K3 w - - 0 1", False),
        ("4k3/8/8/8/8/8/4P3/4K3 w - - 0 1", False),
        ("4k3/8/8/8/8/8/8/1NB1K3 w - - 0 1", False),
    ],
)
def test_insufficient_material(fen: str, insufficient: bool) -> None:
    state = GameState.from_fen(fen)
    assert state.is_insufficient_material() is insufficient
    assert (state.result.reason == INSUFFICIENT_MATERIAL) is insufficient


def test_notation_for_pawn_capture_castle_and_check() -> None:
    state = play(GameState.new(), "e2e4", "d7d5", "e4d5")
    assert state.move_history == ["e4", "d5", "exd5"]

    castle = play(GameState.from_fen("4k3/8/8/8/8/8/8/4K2R w K - 0 1"), "e1g1")
    assert castle.move_history == ["O-O"]

    check = play(GameState.from_fen("4k3/8/8/8/8/8/8/R3K3 w Q - 0 1"), "a1a8")
    assert check.move_history == ["Ra8+"]


def test_promotion_defaults_to_queen() -> None:
    state = GameState.from_fen("8/4P3/8/8/8/8/k7/4K3 w - - 0 1")
    move = state.request_move("e7", "e8")
    assert move.promotion == "Q"
    assert state.position.piece_at("e8") == "wQ"
    assert state.move_history == ["e8=Q"]


def test_underpromotion_is_honoured() -> None:
    state = GameState.from_fen("8/4P3/8/8/8/8/k7/4K3 w - - 0 1")
    state.request_move("e7", "e8", "n")
    assert state.position.piece_at("e8") == "wN"
    assert state.move_history == ["e8=N"]


def test_rejected_requests_leave_state_untouched() -> None:
    state = play(GameState.new(), "e2e4")
    before = state.to_dict()
    with pytest.raises(IllegalMove):
        state.request_move("e7", "e4")
    with pytest.raises(IllegalMove):
        state.request_move("e4", "e5")  # white piece, black to move
    with pytest.raises(IllegalMove):
        state.request_move("e7", "e5", "Q")
    with pytest.raises(IllegalMove):
        state.request_move("e7", "e5", "K")
    with pytest.raises(InvalidSquare):
        state.request_move("e7", "e9")
    assert state.to_dict() == before


def test_last_move_and_legal_targets() -> None:
    state = play(GameState.new(), "g1f3")
    assert state.last_move == {"from": "g1", "to": "f3"}
    assert sorted(state.legal_targets("b8")) == ["a6", "c6"]
    assert state.legal_targets("e4") == []


def test_selection_machine() -> None:
    state = GameState.new(WHITE)

    selected = state.select_square("e2", WHITE)
    assert not selected.moved
    assert selected.selected == "e2"
    assert sorted(selected.legal_targets) == ["e3", "e4"]

    # Clicking another own piece reselects.
    reselected = state.select_square("g1", WHITE)
    assert reselected.selected == "g1"
    assert sorted(reselected.legal_targets) == ["f3", "h3"]

    # A non-target clears the selection without moving.
    cleared = state.select_square("g4", WHITE)
    assert cleared.selected is None and not cleared.moved
    assert state.selected_square is None

    state.select_square("e2", WHITE)
    moved = state.select_square("e4", WHITE)
    assert moved.moved
    assert state.active_color == BLACK
    assert state.position.piece_at("e4") == "wP"
    assert state.selected_square is None
    assert state.legal_targets_cache == []


def test_selection_ignores_wrong_side_and_finished_games() -> None:
    state = GameState.new(WHITE)
    result = state.select_square("e7", BLACK)
    assert not result.moved and result.selected is None
    assert state.position.piece_at("e7") == "bP"

    # Clicking an opponent piece with nothing selected does nothing.
    assert state.select_square("e7", WHITE).selected is None

    over = play(GameState.new(), "f2f3", "e7e5", "g2g4", "d8h4")
    assert over.select_square("a2", WHITE).selected is None


def test_snapshot_round_trip_is_exact() -> None:
    state = play(GameState.new(BLACK), "e2e4", "c7c5", "g1f3", "d7d6", "e1e2")
    snapshot = state.to_dict()
    json.dumps(snapshot)
    assert snapshot["playerColor"] == BLACK
    assert snapshot["activeColor"] == BLACK
    assert snapshot["castlingRights"][WHITE] == {"kingSide": False, "queenSide": False}
    assert snapshot["result"] is None
    assert all(isinstance(pair, list) and len(pair) == 2 for pair in snapshot["repetitionMap"])

    restored = GameState.from_dict(snapshot)
    assert restored.to_dict() == snapshot
    assert restored.position.to_fen() == state.position.to_fen()


def test_snapshot_keeps_en_passant_target_and_result() -> None:
    state = play(GameState.new(), "e2e4")
    assert state.to_dict()["enPassantTarget"] == "e3"

    mated = play(GameState.new(), "f2f3", "e7e5", "g2g4", "d8h4")
    restored = GameState.from_dict(mated.to_dict())
    assert restored.result == mated.result
    assert restored.is_game_over


def test_snapshot_repetition_counts_survive() -> None:
    state = play(GameState.new(), "g1f3", "g8f6", "f3g1", "f6g8", "g1f3", "g8f6", "f3g1")
    restored = GameState.from_dict(json.loads(json.dumps(state.to_dict())))
    assert restored.result.outcome == ONGOING
    restored.request_move("f6", "g8")
    assert restored.result.reason == THREEFOLD_REPETITION


def test_snapshot_without_result_is_recomputed() -> None:
    mated = play(GameState.new(), "f2f3", "e7e5", "g2g4", "d8h4").to_dict()
    mated["result"] = None
    mated["repetitionMap"] = None
    restored = GameState.from_dict(mated)
    assert restored.result.outcome == CHECKMATE
    assert restored.repetitions == {restored.position.repetition_key(): 1}


def test_malformed_snapshots_raise() -> None:
    snapshot = GameState.new().to_dict()

    missing = dict(snapshot)
    del missing["board"]
    with pytest.raises(PositionError):
        GameState.from_dict(missing)

    bad_color = dict(snapshot, activeColor="red")
    with pytest.raises(PositionError):
        GameState.from_dict(bad_color)

    bad_square = dict(snapshot, enPassantTarget="z9")
    with pytest.raises(InvalidSquare):
        GameState.from_dict(bad_square)

    for field_name, value in (
        ("halfmoveClock", "x"),
        ("fullmoveNumber", None),
        ("lastMove", {"from": "e2"}),
        ("repetitionMap", [["only-a-key"]]),
        ("repetitionMap", [["key", "many"]]),
        ("result", "checkmate"),
        ("board", ["wK"]),
    ):
        with pytest.raises(PositionError):
            GameState.from_dict(dict(snapshot, **{field_name: value}))


def test_status_text_speaks_to_the_player() -> None:
    state = GameState.new(BLACK)
    assert state.status_text() == "White to move. Computer's move."
    play(state, "e2e4")
    assert state.status_text() == "Black to move. Your move."

    mated = play(GameState.new(BLACK), "f2f3", "e7e5", "g2g4", "d8h4")
    assert mated.status_text() == "Checkmate. Black wins. You win."


def test_last_move_text_carries_the_move_number() -> None:
    state = GameState.new()
    assert state.to_dict()["lastMoveText"] is None
    play(state, "e2e4")
    assert state.last_move_text == "1. e4"
    play(state, "e7e5", "g1f3")
    assert state.to_dict()["lastMoveText"] == "2. Nf3"
    assert GameState.from_dict(state.to_dict()).last_move_text == "2. Nf3"


def test_restoring_a_finished_snapshot_does_not_recompute(caplog: pytest.LogCaptureFixture) -> None:
    snapshot = play(GameState.new(), "f2f3", "e7e5", "g2g4", "d8h4").to_dict()
    snapshot["result"] = {"outcome": DRAW, "winner": None, "reason": "Agreed"}
    with caplog.at_level(logging.INFO, logger="engine.game_state"):
        restored = GameState.from_dict(snapshot)
    assert restored.result.reason == "Agreed"
    assert not any("Game over" in record.getMessage() for record in caplog.records)
