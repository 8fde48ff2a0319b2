"""
Search entry point: minimax with alpha-beta pruning, quiescence search,
capture-first move ordering, and progressive deepening under a time budget.

This module defines the stable public interface that the front ends
(interface/uci.py, web/app.py, engine/game.py) depend on:

    search(position, level, time_limit_ms, ...) -> SearchResult
    find_best_move(position, level, time_limit_ms, ...) -> Move | None
    find_best_move_async(...)  # asyncio driver, yields between depths

Difficulty levels 1-5 map to nominal depths {1, 2, 3, 3, 4} plies and a
jitter coefficient that shrinks as the level grows:

1. Level 1 scores every legal move one ply deep, keeps the best 40%, and
   picks one at random. Cheap and intentionally weak.

2. Levels 2+ run progressive deepening: a full alpha-beta search at depth 1,
   then 2, up to the nominal depth. Each completed depth replaces the
   previous answer; an interrupted depth is discarded. Between depths the
   driver is suspended (iterate_deepening() is a generator), so a host loop
   can stay responsive.

3. Levels 4+ extend leaf nodes with a capture-only quiescence search to
   avoid stopping mid-exchange.

4. At the root, jitter re-scores every move with a one-ply static
   evaluation and picks uniformly among moves within PAWN_VALUE * jitter * 2
   of the best score, for human-like variety at no search cost.

Cancellation model:
    The clock (and an optional threading.Event, set by UCI "stop") is polled
    at every recursive call. A call that finds the budget spent returns None,
    a sentinel distinct from any score. Callers propagate None upward
    without touching alpha/beta, so the root ends with its best move so far
    and the driver falls back to the deepest completed depth. A search never
    raises on timeout and never returns no move while a legal move exists.

State model:
    The caller's position is copied once on entry, and every node searches a
    fresh copy of its parent (clone-per-node), so searches never observe or
    mutate the authoritative game state and sibling branches never alias.
"""

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Iterator

from engine.constants import (
    DEFAULT_LEVEL,
    DRAW_SCORE,
    INFINITY,
    LEVEL1_KEEP_FRACTION,
    LEVEL_DEPTHS,
    LEVEL_RANDOMNESS,
    MATE_SCORE,
    MAX_LEVEL,
    MIN_LEVEL,
    PAWN_VALUE,
    PIECE_VALUES,
    QUIESCENCE_CAPTURE_LIMIT,
    QUIESCENCE_MIN_LEVEL,
)
from engine.evaluate import evaluate
from engine.move import Move
from engine.position import Position
from engine.rules import is_in_check, legal_moves

_log = logging.getLogger(__name__)


def clamp_level(level: object) -> int:
    """Clamp a difficulty to 1..5; unparseable values fall back to the default."""
    try:
        value = int(level)
    except (TypeError, ValueError):
        return DEFAULT_LEVEL
    return max(MIN_LEVEL, min(MAX_LEVEL, value))


@dataclass
class SearchState:
    """
    Mutable state for one search invocation.

    Keeping all mutable state in one object (rather than global variables)
    makes the cancellation model explicit and testable. Nothing in it is
    shared across invocations.

    Attributes:
        root_color:     Color the search is choosing a move for. Scores are
                        always from this color's perspective.
        level:          Clamped difficulty level.
        time_limit_ms:  Wall-clock budget for the whole invocation.
        start_time:     Monotonic clock timestamp when the search began.
        rng:            Random source for level 1 and root jitter. Inject a
                        seeded random.Random for reproducible play.
        stop_event:     Optional external stop flag (UCI "stop").
        node_count:     Positions visited, for reporting.
    """

    root_color: str
    level: int = DEFAULT_LEVEL
    time_limit_ms: float = float("inf")
    start_time: float = field(default_factory=time.monotonic)
    rng: random.Random = field(default_factory=random.Random)
    stop_event: threading.Event | None = None
    node_count: int = 0

    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def out_of_time(self) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            return True
        return self.elapsed_ms() >= self.time_limit_ms


@dataclass(frozen=True)
class SearchIteration:
    """Result of one completed progressive-deepening depth."""

    depth: int
    move: Move
    score: int
    nodes: int


@dataclass(frozen=True)
class SearchResult:
    """
    Outcome of a search invocation.

    Fields:
        move:  The chosen move, or None only when there is no legal move.
        score: Centipawns for the searching side. Positive = ahead.
        depth: Deepest fully completed depth (0 if none completed).
        nodes: Positions visited.
    """

    move: Move | None
    score: int
    depth: int
    nodes: int


def _child(position: Position, move: Move) -> Position:
    child = position.copy()
    child.apply_move(move)
    return child


def _capture_value(move: Move) -> int:
    return PIECE_VALUES[move.captured[1]] if move.captured else 0


def _order_moves(moves: list[Move]) -> list[Move]:
    """Captures and promotions first, most valuable gain first; stable otherwise."""
    return sorted(
        moves,
        key=lambda m: _capture_value(m) + (PIECE_VALUES[m.promotion] if m.promotion else 0),
        reverse=True,
    )


def quiescence(position: Position, alpha: int, beta: int, state: SearchState) -> int | None:
    """
    Capture-only search from the side to move's perspective.

    Stand-pat: the side to move can always decline to capture, so the static
    evaluation is a lower bound and the initial alpha. Only capturing moves
    are explored, most valuable victim first and at most
    QUIESCENCE_CAPTURE_LIMIT of them, each with the window negated and
    swapped for the opponent.

    Returns:
        The best of stand-pat and any improving capture sequence, or None if
        the time budget ran out.
    """
    if state.out_of_time():
        return None
    state.node_count += 1

    stand_pat = evaluate(position, position.active_color)
    if stand_pat >= beta:
        return stand_pat
    best = stand_pat
    if best > alpha:
        alpha = best

    captures = [m for m in legal_moves(position) if m.is_capture]
    captures.sort(key=_capture_value, reverse=True)
    for move in captures[:QUIESCENCE_CAPTURE_LIMIT]:
        reply = quiescence(_child(position, move), -beta, -alpha, state)
        if reply is None:
            return None
        score = -reply
        if score > best:
            best = score
        if best > alpha:
            alpha = best
        if alpha >= beta:
            break

    return best


def minimax(
    position: Position,
    depth: int,
    alpha: int,
    beta: int,
    maximizing: bool,
    ply: int,
    state: SearchState,
) -> int | None:
    """
    Minimax search with alpha-beta pruning, scored for state.root_color.

    Maximizes where the root color is to move and minimizes elsewhere. The
    alpha-beta window [alpha, beta] prunes branches that cannot influence
    the final decision.

    Args:
        position: Node position. Never mutated; children are fresh copies.
        depth:    Remaining depth in plies.
        alpha:    Best score the maximizer can already guarantee.
        beta:     Best score the minimizer can already guarantee.
        maximizing: True when the root color is to move at this node.
        ply:      Distance from the root, used to prefer faster mates.
        state:    Per-invocation search state.

    Returns:
        The score, or None if the time budget ran out. None must be passed
        straight up: it is not a score.
    """
    if state.out_of_time():
        return None
    state.node_count += 1

    moves = legal_moves(position)
    if not moves:
        if is_in_check(position):
            # The side to move is mated; the other side delivered it.
            return -(MATE_SCORE - ply) if maximizing else MATE_SCORE - ply
        return DRAW_SCORE

    if depth <= 0:
        if state.level >= QUIESCENCE_MIN_LEVEL:
            if maximizing:
                return quiescence(position, alpha, beta, state)
            reply = quiescence(position, -beta, -alpha, state)
            return None if reply is None else -reply
        return evaluate(position, state.root_color)

    if maximizing:
        value = -INFINITY
        for move in _order_moves(moves):
            child = minimax(_child(position, move), depth - 1, alpha, beta, False, ply + 1, state)
            if child is None:
                return None
            if child > value:
                value = child
            if value > alpha:
                alpha = value
            if alpha >= beta:
                break
        return value

    value = INFINITY
    for move in _order_moves(moves):
        child = minimax(_child(position, move), depth - 1, alpha, beta, True, ply + 1, state)
        if child is None:
            return None
        if child < value:
            value = child
        if value < beta:
            beta = value
        if alpha >= beta:
            break
    return value


def search_root(
    position: Position, moves: list[Move], depth: int, state: SearchState
) -> tuple[Move, int, bool]:
    """
    Search every root move to `depth` and pick one.

    Moves are ordered by captured-piece value so captures come first. After
    a complete pass, jitter may swap the best move for another whose one-ply
    static score lies within the level's band of the best score.

    Returns:
        (move, score, completed). When the budget runs out mid-pass the best
        move found so far is returned with completed=False; the first ordered
        move stands in if none was scored.
    """
    maximizing = position.active_color == state.root_color
    ordered = sorted(moves, key=_capture_value, reverse=True)

    best_move = ordered[0]
    best_score = -INFINITY if maximizing else INFINITY
    alpha, beta = -INFINITY, INFINITY

    for move in ordered:
        score = minimax(_child(position, move), depth - 1, alpha, beta, not maximizing, 1, state)
        if score is None:
            return best_move, best_score, False

        if maximizing:
            if score > best_score:
                best_score, best_move = score, move
            alpha = max(alpha, score)
        else:
            if score < best_score:
                best_score, best_move = score, move
            beta = min(beta, score)

    jitter = LEVEL_RANDOMNESS.get(state.level, 0.0)
    if jitter > 0 and len(ordered) > 1:
        band = PAWN_VALUE * jitter * 2
        candidates = []
        for move in ordered:
            if state.out_of_time():
                return best_move, best_score, True
            static = evaluate(_child(position, move), state.root_color)
            if abs(static - best_score) <= band:
                candidates.append(move)
        if candidates:
            return state.rng.choice(candidates), best_score, True

    return best_move, best_score, True


def pick_level1_move(position: Position, moves: list[Move], state: SearchState) -> tuple[Move, int]:
    """Random pick among the top share of moves by one-ply static score."""
    scored = [(evaluate(_child(position, m), state.root_color), m) for m in moves]
    state.node_count += len(scored)
    scored.sort(key=lambda pair: pair[0], reverse=True)
    keep = max(1, int(len(scored) * LEVEL1_KEEP_FRACTION))
    score, move = state.rng.choice(scored[:keep])
    return move, score


def iterate_deepening(
    position: Position, moves: list[Move], max_depth: int, state: SearchState
) -> Iterator[SearchIteration]:
    """
    Progressive deepening as a resumable task.

    Yields once per completed depth. Each yield is a suspension point: the
    consumer may do other work before resuming, and resuming starts the
    next depth. Stops when the nominal depth is done, when a depth is
    interrupted, or when the budget is spent between depths.
    """
    for depth in range(1, max_depth + 1):
        if state.out_of_time():
            return
        move, score, completed = search_root(position, moves, depth, state)
        if not completed:
            _log.debug("depth %d interrupted after %.0f ms", depth, state.elapsed_ms())
            return
        _log.debug(
            "depth %d: %s score=%d nodes=%d", depth, move.uci, score, state.node_count
        )
        yield SearchIteration(depth, move, score, state.node_count)


def _prepare(
    position: Position,
    level: object,
    time_limit_ms: float,
    rng: random.Random | None,
    stop_event: threading.Event | None,
    for_color: str | None,
) -> tuple[Position, list[Move], SearchState]:
    root = position.copy()
    state = SearchState(
        root_color=for_color or root.active_color,
        level=clamp_level(level),
        time_limit_ms=float(time_limit_ms),
        rng=rng if rng is not None else random.Random(),
        stop_event=stop_event,
    )
    return root, legal_moves(root), state


def search(
    position: Position,
    level: object = DEFAULT_LEVEL,
    time_limit_ms: float = float("inf"),
    rng: random.Random | None = None,
    stop_event: threading.Event | None = None,
    for_color: str | None = None,
) -> SearchResult:
    """
    Choose a move for the side to move within the budget.

    Args:
        position:      The position to search. Copied; never modified.
        level:         Difficulty 1-5, clamped if out of range.
        time_limit_ms: Wall-clock budget in milliseconds.
        rng:           Random source; defaults to a fresh random.Random.
        stop_event:    Optional flag that ends the search like a timeout.
        for_color:     Color whose perspective scores are taken from;
                       defaults to the side to move.

    Returns:
        SearchResult. move is None only when there is no legal move.
    """
    root, moves, state = _prepare(position, level, time_limit_ms, rng, stop_event, for_color)
    if not moves:
        return SearchResult(None, 0, 0, 0)

    if state.level == 1:
        move, score = pick_level1_move(root, moves, state)
        return SearchResult(move, score, 1, state.node_count)

    best = None
    for iteration in iterate_deepening(root, moves, LEVEL_DEPTHS[state.level], state):
        best = iteration
    return _finish(best, moves, state)


async def find_best_move_async(
    position: Position,
    level: object = DEFAULT_LEVEL,
    time_limit_ms: float = float("inf"),
    rng: random.Random | None = None,
    stop_event: threading.Event | None = None,
    for_color: str | None = None,
) -> Move | None:
    """Like find_best_move, but hands control to the event loop between depths."""
    root, moves, state = _prepare(position, level, time_limit_ms, rng, stop_event, for_color)
    if not moves:
        return None
    if state.level == 1:
        return pick_level1_move(root, moves, state)[0]

    best = None
    task = iterate_deepening(root, moves, LEVEL_DEPTHS[state.level], state)
    while True:
        await asyncio.sleep(0)
        iteration = next(task, None)
        if iteration is None:
            break
        best = iteration
    return _finish(best, moves, state).move


def _finish(best: SearchIteration | None, moves: list[Move], state: SearchState) -> SearchResult:
    if best is None:
        # Not even depth 1 completed: any legal move beats no move.
        _log.debug("no depth completed in %.0f ms, using first legal move", state.elapsed_ms())
        return SearchResult(moves[0], 0, 0, state.node_count)
    return SearchResult(best.move, best.score, best.depth, state.node_count)


def find_best_move(
    position: Position,
    level: object = DEFAULT_LEVEL,
    time_limit_ms: float = float("inf"),
    rng: random.Random | None = None,
    stop_event: threading.Event | None = None,
    for_color: str | None = None,
) -> Move | None:
    """
    Return one legal move for the side to move, or None if none exists.

    This is the search invocation interface: a position, a difficulty
    level, and a time budget in milliseconds.
    """
    return search(position, level, time_limit_ms, rng, stop_event, for_color).move
