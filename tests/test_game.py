import random

import pytest

from engine.constants import BLACK, DEFAULT_TIME_LIMIT_MS, WHITE
from engine.errors import GameAlreadyOver, IllegalMove, OutOfTurn
from engine.game import Game, clamp_thinking_time


@pytest.mark.parametrize(
    "value, expected",
    [(0, 1_000), (500, 1_000), (5_000, 5_000), (120_000, 60_000), ("2500", 2_500), ("soon", DEFAULT_TIME_LIMIT_MS)],
)
def test_clamp_thinking_time(value, expected: int) -> None:
    assert clamp_thinking_time(value) == expected


def test_settings_are_clamped() -> None:
    game = Game(player_color=WHITE, difficulty=9, time_limit_ms=10)
    assert game.difficulty == 5
    assert game.time_limit_ms == 1_000
    game.set_difficulty(0)
    game.set_thinking_time(90_000)
    assert game.difficulty == 1
    assert game.time_limit_ms == 60_000


def test_random_color_uses_injected_rng() -> None:
    colors = {Game(player_color="random", rng=random.Random(seed)).player_color for seed in range(20)}
    assert colors == {WHITE, BLACK}


def test_turns_alternate_between_human_and_engine() -> None:
    game = Game(player_color=WHITE, difficulty=2, time_limit_ms=1_000, rng=random.Random(1))
    assert not game.is_engine_turn
    assert game.snapshot()["turnText"] == "Your move"

    game.submit_move("e2", "e4")
    assert game.is_engine_turn
    assert game.snapshot()["turnText"] == "Computer's move"

    with pytest.raises(OutOfTurn):
        game.submit_move("d2", "d4")

    move = game.play_ai_turn()
    assert move is not None
    assert move.piece.startswith("b")
    assert game.current_turn == WHITE
    assert len(game.state.move_history) == 2
    assert game.play_ai_turn() is None


def test_engine_moves_first_when_human_is_black() -> None:
    game = Game(player_color=BLACK, difficulty=1, rng=random.Random(4))
    assert game.engine_color == WHITE
    assert game.is_engine_turn
    move = game.compute_ai_move()
    assert game.state.move_history == []
    game.apply_ai_move(move)
    assert game.current_turn == BLACK


def test_illegal_request_raises_and_keeps_state() -> None:
    game = Game(player_color=WHITE)
    before = game.snapshot()
    with pytest.raises(IllegalMove):
        game.submit_move("e2", "e5")
    assert game.snapshot() == before


def test_click_flow_notifies_after_a_move() -> None:
    updates = []
    game = Game(player_color=WHITE, on_update=updates.append)
    assert len(updates) == 1

    selected = game.handle_square_click("g1")
    assert sorted(selected.legal_targets) == ["f3", "h3"]
    assert game.snapshot()["selectedSquare"] == "g1"
    assert len(updates) == 1

    moved = game.handle_square_click("f3")
    assert moved.moved
    assert len(updates) == 2
    assert updates[-1]["lastMove"] == {"from": "g1", "to": "f3"}


def test_finished_game_refuses_moves() -> None:
    game = Game(player_color=WHITE)
    for from_sq, to_sq in (("f2", "f3"), ("e7", "e5"), ("g2", "g4"), ("d8", "h4")):
        game.state.request_move(from_sq, to_sq)
    assert game.is_game_over
    assert not game.is_engine_turn
    assert game.snapshot()["turnText"] == ""
    with pytest.raises(GameAlreadyOver):
        game.submit_move("a2", "a3")
    assert game.compute_ai_move() is None
    assert game.handle_square_click("a2").selected is None
