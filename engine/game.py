"""
Game session orchestrator: a human side against the engine side.

Game wires GameState (rules and bookkeeping) to the search. Front ends call
handle_square_click() for click-driven play or submit_move() for direct
requests, then compute_ai_move() / apply_ai_move() (or play_ai_turn()) on
the engine's turn. Moves are strictly sequential: the engine's move is
searched on a copy of the position and only applied by the caller once the
search has returned.
"""

import logging
import random
from typing import Any, Callable

from engine.board import opposite_color
from engine.constants import (
    BLACK,
    COLORS,
    DEFAULT_LEVEL,
    DEFAULT_TIME_LIMIT_MS,
    MAX_THINKING_TIME_MS,
    MIN_THINKING_TIME_MS,
    WHITE,
)
from engine.errors import GameAlreadyOver, OutOfTurn
from engine.game_state import GameState, SelectionResult
from engine.move import Move
from engine.search import clamp_level, search

_log = logging.getLogger(__name__)

UpdateCallback = Callable[[dict[str, Any]], None]


def clamp_thinking_time(time_limit_ms: object) -> int:
    """Clamp a thinking time to 1-60 s; unparseable values use the default."""
    try:
        value = int(time_limit_ms)
    except (TypeError, ValueError):
        return DEFAULT_TIME_LIMIT_MS
    return max(MIN_THINKING_TIME_MS, min(MAX_THINKING_TIME_MS, value))


class Game:
    """
    One human-versus-engine game.

    Args:
        player_color:  "white", "black", or "random" (resolved with rng).
        difficulty:    Engine level 1-5, clamped.
        time_limit_ms: Engine thinking time, clamped to 1-60 s.
        rng:           Random source for color choice and engine jitter.
        on_update:     Called with a fresh snapshot after every applied move.
    """

    def __init__(
        self,
        player_color: str = "random",
        difficulty: object = DEFAULT_LEVEL,
        time_limit_ms: object = DEFAULT_TIME_LIMIT_MS,
        rng: random.Random | None = None,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self.rng = rng if rng is not None else random.Random()
        if player_color not in COLORS:
            player_color = self.rng.choice((WHITE, BLACK))
        self.state = GameState.new(player_color)
        self.difficulty = clamp_level(difficulty)
        self.time_limit_ms = clamp_thinking_time(time_limit_ms)
        self.on_update = on_update or (lambda snapshot: None)
        self._notify()

    # -----------------------------------------------------------------------
    # Settings and queries
    # -----------------------------------------------------------------------

    def set_difficulty(self, level: object) -> None:
        self.difficulty = clamp_level(level)

    def set_thinking_time(self, time_limit_ms: object) -> None:
        self.time_limit_ms = clamp_thinking_time(time_limit_ms)

    @property
    def player_color(self) -> str:
        return self.state.player_color

    @property
    def engine_color(self) -> str:
        return opposite_color(self.state.player_color)

    @property
    def current_turn(self) -> str:
        return self.state.active_color

    @property
    def is_game_over(self) -> bool:
        return self.state.is_game_over

    @property
    def is_engine_turn(self) -> bool:
        return not self.is_game_over and self.current_turn == self.engine_color

    def snapshot(self) -> dict[str, Any]:
        snapshot = self.state.to_dict()
        snapshot["selectedSquare"] = self.state.selected_square
        snapshot["legalTargets"] = self.state.legal_targets_cache[:]
        snapshot["turnText"] = (
            ""
            if self.is_game_over
            else "Your move" if self.current_turn == self.player_color else "Computer's move"
        )
        return snapshot

    def legal_targets(self, square: str) -> list[str]:
        return self.state.legal_targets(square)

    # -----------------------------------------------------------------------
    # Human moves
    # -----------------------------------------------------------------------

    def handle_square_click(self, square: str) -> SelectionResult:
        """
        Feed one board click from the human side into the selection machine.
        Clicks after the game ends or during the engine's turn change nothing.
        """
        result = self.state.select_square(square, self.player_color)
        if result.moved:
            self._notify()
        return result

    def submit_move(self, from_square: str, to_square: str, promotion: str | None = None) -> Move:
        """
        Apply a direct move request from the human side.

        Raises:
            GameAlreadyOver: if the game has ended.
            OutOfTurn: if it is the engine's turn.
            IllegalMove: if the request matches no legal move.
        """
        if self.is_game_over:
            raise GameAlreadyOver("Game is over")
        if self.current_turn != self.player_color:
            raise OutOfTurn("Not your turn")
        move = self.state.request_move(from_square, to_square, promotion)
        self._notify()
        return move

    # -----------------------------------------------------------------------
    # Engine moves
    # -----------------------------------------------------------------------

    def compute_ai_move(self) -> Move | None:
        """Search the current position for the side to move; no state change."""
        if self.is_game_over:
            return None
        result = search(
            self.state.position,
            level=self.difficulty,
            time_limit_ms=self.time_limit_ms,
            rng=self.rng,
        )
        if result.move is not None:
            _log.debug(
                "engine move %s depth=%d score=%d nodes=%d",
                result.move.uci,
                result.depth,
                result.score,
                result.nodes,
            )
        return result.move

    def apply_ai_move(self, move: Move | None) -> None:
        if move is None:
            return
        self.state.apply_move(move)
        self._notify()

    def play_ai_turn(self) -> Move | None:
        """Search and apply the engine's move if it is the engine's turn."""
        if not self.is_engine_turn:
            return None
        move = self.compute_ai_move()
        self.apply_ai_move(move)
        return move

    def _notify(self) -> None:
        self.on_update(self.snapshot())
