"""
FastAPI web application for the chess engine.

Two styles of use:

- Sessions: POST /api/games creates a human-versus-engine game kept in
  memory; the client then selects squares, submits moves, and asks for the
  engine's reply against that game id. Every response is the full
  position snapshot.
- Stateless: POST /api/move accepts a snapshot plus level and time budget,
  runs the search, and returns the move and the snapshot after it.

Architecture notes:
- Sync endpoints (not async): FastAPI runs sync handlers in a thread pool,
  which is the correct pattern for CPU-bound blocking calls like search.
- Engine errors map onto HTTP statuses in one place (_raise_http).
- Board rendering is left to clients; no static assets are served.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, NoReturn

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, field_validator

from engine.constants import DEFAULT_LEVEL, DEFAULT_TIME_LIMIT_MS
from engine.errors import ChessError, GameAlreadyOver, IllegalMove, OutOfTurn
from engine.game import Game, clamp_thinking_time
from engine.game_state import GameState
from engine.search import clamp_level, search

# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

logging.basicConfig(level=logging.INFO)
_log = logging.getLogger(__name__)

app = FastAPI(title="Polaris Chess", version="1.0.0")


@dataclass
class Session:
    """A game plus the lock that serializes its moves and engine searches."""

    game: Game
    lock: threading.Lock = field(default_factory=threading.Lock)


# In-memory sessions. _games_lock guards only the dict itself; moves take the
# per-session lock so a search in one game never stalls another.
_games: dict[str, Session] = {}
_games_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class NewGameRequest(BaseModel):
    """
    Fields:
        player_color: "white", "black", or "random".
        difficulty:   Engine level, clamped to 1-5.
        time_limit_ms: Engine thinking time, clamped to 1-60 s.
    """

    player_color: str = "random"
    difficulty: int = DEFAULT_LEVEL
    time_limit_ms: int = DEFAULT_TIME_LIMIT_MS

    @field_validator("difficulty")
    @classmethod
    def clamp_difficulty(cls, v: int) -> int:
        return clamp_level(v)

    @field_validator("time_limit_ms")
    @classmethod
    def clamp_time(cls, v: int) -> int:
        return clamp_thinking_time(v)


class SquareRequest(BaseModel):
    square: str


class MoveRequest(BaseModel):
    """A move request in coordinates; promotion is Q, R, B, or N."""

    from_square: str
    to_square: str
    promotion: str | None = None


class SearchRequest(BaseModel):
    """
    Client request for a stateless engine move.

    Fields:
        snapshot:      Position snapshot as produced by the game endpoints.
        level:         Difficulty, clamped to 1-5.
        time_limit_ms: Budget in milliseconds, clamped to [1, 60000].
    """

    snapshot: dict[str, Any]
    level: int = DEFAULT_LEVEL
    time_limit_ms: int = DEFAULT_TIME_LIMIT_MS

    @field_validator("level")
    @classmethod
    def clamp_level_value(cls, v: int) -> int:
        return clamp_level(v)

    @field_validator("time_limit_ms")
    @classmethod
    def clamp_time_limit(cls, v: int) -> int:
        return max(1, min(v, 60_000))


class SearchResponse(BaseModel):
    """
    Fields:
        move:     Chosen move as a dict with algebraic squares, or None when
                  the side to move has no legal move.
        uci:      Same move in UCI notation, or None.
        score:    Centipawns for the side that moved.
        depth:    Deepest completed search depth.
        snapshot: Snapshot after the move is applied.
    """

    move: dict[str, Any] | None
    uci: str | None
    score: int
    depth: int
    snapshot: dict[str, Any]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _raise_http(exc: ChessError) -> NoReturn:
    if isinstance(exc, (OutOfTurn, GameAlreadyOver)):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, IllegalMove):
        raise HTTPException(status_code=400, detail=exc.reason) from exc
    raise HTTPException(status_code=400, detail=str(exc)) from exc


def _get_session(game_id: str) -> Session:
    with _games_lock:
        session = _games.get(game_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown game: {game_id}")
    return session


# ---------------------------------------------------------------------------
# Session routes
# ---------------------------------------------------------------------------


@app.post("/api/games")
def create_game(request: NewGameRequest) -> dict[str, Any]:
    game = Game(
        player_color=request.player_color,
        difficulty=request.difficulty,
        time_limit_ms=request.time_limit_ms,
    )
    game_id = uuid.uuid4().hex
    with _games_lock:
        _games[game_id] = Session(game)
    _log.info("New game %s player=%s level=%d", game_id, game.player_color, game.difficulty)
    return {"id": game_id, **game.snapshot()}


@app.get("/api/games/{game_id}")
def get_game(game_id: str) -> dict[str, Any]:
    return {"id": game_id, **_get_session(game_id).game.snapshot()}


@app.delete("/api/games/{game_id}", status_code=204)
def delete_game(game_id: str) -> None:
    with _games_lock:
        if _games.pop(game_id, None) is None:
            raise HTTPException(status_code=404, detail=f"Unknown game: {game_id}")


@app.post("/api/games/{game_id}/select")
def select_square(game_id: str, request: SquareRequest) -> dict[str, Any]:
    session = _get_session(game_id)
    with session.lock:
        try:
            result = session.game.handle_square_click(request.square)
        except ChessError as exc:
            _raise_http(exc)
        return {
            "id": game_id,
            "moved": result.moved,
            "selected": result.selected,
            "legalTargets": result.legal_targets,
            **session.game.snapshot(),
        }


@app.post("/api/games/{game_id}/move")
def submit_move(game_id: str, request: MoveRequest) -> dict[str, Any]:
    session = _get_session(game_id)
    with session.lock:
        try:
            move = session.game.submit_move(request.from_square, request.to_square, request.promotion)
        except ChessError as exc:
            _raise_http(exc)
        return {"id": game_id, "move": move.to_dict(), **session.game.snapshot()}


@app.post("/api/games/{game_id}/engine-move")
def engine_move(game_id: str) -> dict[str, Any]:
    """Search and apply the engine's move. 409 if it is not the engine's turn."""
    session = _get_session(game_id)
    game = session.game
    with session.lock:
        if game.is_game_over:
            raise HTTPException(status_code=409, detail="Game is over")
        if not game.is_engine_turn:
            raise HTTPException(status_code=409, detail="Not the engine's turn")
        try:
            move = game.play_ai_turn()
        except Exception as exc:
            _log.exception("Engine search failed for game %s", game_id)
            raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc
        snapshot = game.snapshot()
    _log.info("Game %s engine move=%s", game_id, move.uci if move else None)
    return {"id": game_id, "move": move.to_dict() if move else None, **snapshot}


# ---------------------------------------------------------------------------
# Stateless route
# ---------------------------------------------------------------------------


@app.post("/api/move", response_model=SearchResponse)
def api_move(request: SearchRequest) -> SearchResponse:
    """
    Compute and apply the engine's move for the given snapshot.

    Raises:
        HTTPException 400: Malformed snapshot or game already over.
        HTTPException 500: Unexpected engine failure.
    """
    try:
        state = GameState.from_dict(request.snapshot)
    except ChessError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid snapshot: {exc}") from exc

    if state.is_game_over:
        raise HTTPException(
            status_code=400,
            detail=f"Game is already over: {state.result.reason}",
        )

    try:
        result = search(state.position, request.level, request.time_limit_ms)
    except Exception as exc:
        _log.exception("Engine search failed for snapshot")
        raise HTTPException(status_code=500, detail=f"Engine error: {exc}") from exc

    if result.move is None:
        raise HTTPException(status_code=500, detail="Engine returned no move")

    _log.info(
        "Move=%s score=%d depth=%d nodes=%d fen=%s",
        result.move.uci,
        result.score,
        result.depth,
        result.nodes,
        state.position.to_fen()[:40],
    )

    state.apply_move(result.move)
    return SearchResponse(
        move=result.move.to_dict(),
        uci=result.move.uci,
        score=result.score,
        depth=result.depth,
        snapshot=state.to_dict(),
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
