"""
GameState: the authoritative session state of one game.

GameState owns a Position plus the bookkeeping that spans moves: notated
move history, repetition counts, the last move, and the result. It is
mutated exactly once per applied legal move and refuses further moves once
the result is terminal.

It also carries the click-driven selection state machine used by board
front ends:

    Idle     + click own piece            -> Selected (legal targets cached)
    Selected + click own piece            -> Selected on the new piece
    Selected + click a legal target       -> move applied, Idle
    Selected + click anything else        -> Idle, no move
    any      + click while over/off turn  -> unchanged
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from engine.board import (
    algebraic_to_index,
    board_to_map,
    index_to_algebraic,
    map_to_board,
    opposite_color,
)
from engine.constants import (
    BISHOP,
    BLACK,
    COLORS,
    FIFTY_MOVE_HALFMOVES,
    FILES,
    KNIGHT,
    PAWN,
    PROMOTION_TYPES,
    REPETITION_LIMIT,
    WHITE,
)
from engine.errors import ChessError, GameAlreadyOver, IllegalMove, PositionError
from engine.move import Move
from engine.position import CastlingRights, Position, count_material
from engine.rules import analyze_position, legal_moves

_log = logging.getLogger(__name__)

ONGOING = "ongoing"
CHECKMATE = "checkmate"
STALEMATE = "stalemate"
DRAW = "draw"
OUTCOMES = (ONGOING, CHECKMATE, STALEMATE, DRAW)

FIFTY_MOVE_RULE = "Fifty-move rule"
THREEFOLD_REPETITION = "Threefold repetition"
INSUFFICIENT_MATERIAL = "Insufficient material"


@dataclass(frozen=True)
class GameResult:
    outcome: str = ONGOING
    winner: str | None = None
    reason: str | None = None

    @property
    def is_over(self) -> bool:
        return self.outcome != ONGOING

    def to_dict(self) -> dict[str, Any]:
        return {"outcome": self.outcome, "winner": self.winner, "reason": self.reason}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameResult":
        outcome = data.get("outcome", ONGOING)
        if outcome not in OUTCOMES:
            raise PositionError(f"Invalid outcome: {outcome!r}")
        return cls(outcome, data.get("winner"), data.get("reason"))


@dataclass(frozen=True)
class SelectionResult:
    moved: bool
    selected: str | None
    legal_targets: list[str] = field(default_factory=list)


class GameState:
    """
    One game: position, history, repetition counts, and result.

    Squares at this boundary are algebraic strings ("e2"), since callers are
    front ends and serialized snapshots.
    """

    def __init__(
        self,
        position: Position | None = None,
        player_color: str = WHITE,
        recompute: bool = True,
    ) -> None:
        """
        With recompute=False the repetition map stays empty and the result
        stays ongoing; from_dict() installs both from the snapshot instead.
        """
        self.position: Position = position if position is not None else Position.starting()
        self.player_color: str = player_color
        self.move_history: list[str] = []
        self.repetitions: dict[str, int] = {}
        self.last_move: dict[str, str] | None = None
        self.last_move_text: str | None = None
        self.result: GameResult = GameResult()
        self.selected_square: str | None = None
        self.legal_targets_cache: list[str] = []
        if recompute:
            self._record_repetition()
            self.update_result()

    @classmethod
    def new(cls, player_color: str = WHITE) -> "GameState":
        return cls(Position.starting(), player_color)

    @classmethod
    def from_fen(cls, fen: str, player_color: str = WHITE) -> "GameState":
        return cls(Position.from_fen(fen), player_color)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    @property
    def active_color(self) -> str:
        return self.position.active_color

    @property
    def is_game_over(self) -> bool:
        return self.result.is_over

    def legal_moves(self) -> list[Move]:
        return legal_moves(self.position)

    def legal_targets(self, square: str) -> list[str]:
        """Destination squares of the legal moves starting on square."""
        if self.is_game_over:
            return []
        origin = algebraic_to_index(square)
        targets: list[str] = []
        for move in self.legal_moves():
            target = index_to_algebraic(move.to_sq)
            if move.from_sq == origin and target not in targets:
                targets.append(target)
        return targets

    def find_move(self, from_square: str, to_square: str, promotion: str | None = None) -> Move:
        """
        Match a move request against the legal move set.

        An omitted promotion on a promotion move means a queen. A promotion
        piece on a move that does not promote is rejected.

        Raises:
            InvalidSquare: if a coordinate is malformed.
            IllegalMove: if no legal move matches.
        """
        origin = algebraic_to_index(from_square)
        target = algebraic_to_index(to_square)
        if promotion is not None:
            promotion = promotion.upper()
            if promotion not in PROMOTION_TYPES:
                raise IllegalMove(f"Invalid promotion piece: {promotion!r}")

        candidates = [m for m in self.legal_moves() if m.from_sq == origin and m.to_sq == target]
        if not candidates:
            raise IllegalMove(f"Illegal move: {from_square}{to_square}")
        for move in candidates:
            if move.promotion is None:
                if promotion is None:
                    return move
                raise IllegalMove(f"{from_square}{to_square} is not a promotion")
            if move.promotion == (promotion or PROMOTION_TYPES[0]):
                return move
        raise IllegalMove(f"Illegal move: {from_square}{to_square}")

    def request_move(self, from_square: str, to_square: str, promotion: str | None = None) -> Move:
        """
        Validate and apply a move request. State is untouched on failure.

        Raises:
            GameAlreadyOver: if the result is already terminal.
            IllegalMove: if the request matches no legal move.
        """
        if self.is_game_over:
            raise GameAlreadyOver(f"Game is over: {self.result.reason}")
        move = self.find_move(from_square, to_square, promotion)
        self.apply_move(move)
        return move

    # -----------------------------------------------------------------------
    # Transition
    # -----------------------------------------------------------------------

    def apply_move(self, move: Move) -> None:
        """
        Apply a move known to be legal, then record notation, last move, and
        repetition key and recompute the result.

        Raises:
            GameAlreadyOver: if the result is already terminal.
        """
        if self.is_game_over:
            raise GameAlreadyOver(f"Game is over: {self.result.reason}")

        notation = self._notation_base(move)
        move_number = self.position.fullmove_number
        self.position.apply_move(move)

        has_moves, in_check = analyze_position(self.position)
        if in_check:
            notation += "+" if has_moves else "#"

        self.move_history.append(notation)
        self.last_move_text = f"{move_number}. {notation}"
        self.last_move = {"from": index_to_algebraic(move.from_sq), "to": index_to_algebraic(move.to_sq)}
        self._record_repetition()
        self.selected_square = None
        self.legal_targets_cache = []
        self.update_result()

    def _notation_base(self, move: Move) -> str:
        """Simplified SAN without the check suffix."""
        if move.is_castle_kingside:
            return "O-O"
        if move.is_castle_queenside:
            return "O-O-O"
        text = ""
        kind = move.piece[1]
        if kind != PAWN:
            text += kind
        elif move.is_capture:
            text += FILES[move.from_sq % 8]
        if move.is_capture:
            text += "x"
        text += index_to_algebraic(move.to_sq)
        if move.promotion:
            text += "=" + move.promotion
        return text

    def _record_repetition(self) -> None:
        key = self.position.repetition_key()
        self.repetitions[key] = self.repetitions.get(key, 0) + 1

    def update_result(self) -> GameResult:
        """
        Recompute the result for the side to move. Does nothing once the
        result is terminal.

        Priority: checkmate and stalemate first, then the fifty-move rule,
        threefold repetition, and insufficient material.
        """
        if self.is_game_over:
            return self.result

        has_moves, in_check = analyze_position(self.position)
        if not has_moves:
            if in_check:
                winner = opposite_color(self.active_color)
                self.result = GameResult(CHECKMATE, winner, "Checkmate")
            else:
                self.result = GameResult(STALEMATE, None, "Stalemate")
        elif self.position.halfmove_clock >= FIFTY_MOVE_HALFMOVES:
            self.result = GameResult(DRAW, None, FIFTY_MOVE_RULE)
        elif self.has_threefold_repetition():
            self.result = GameResult(DRAW, None, THREEFOLD_REPETITION)
        elif self.is_insufficient_material():
            self.result = GameResult(DRAW, None, INSUFFICIENT_MATERIAL)
        else:
            self.result = GameResult()

        if self.result.is_over:
            _log.info("Game over: %s (%s)", self.result.outcome, self.result.reason)
        return self.result

    def has_threefold_repetition(self) -> bool:
        return any(count >= REPETITION_LIMIT for count in self.repetitions.values())

    def is_insufficient_material(self) -> bool:
        """
        Bare kings, a single minor piece, or one bishop each.

        Bishop square colors are not compared: king and bishop against king
        and bishop counts as drawn even on opposite colored bishops.
        """
        material = count_material(self.position.board)
        pieces = material[WHITE] + material[BLACK]
        if not pieces:
            return True
        if len(pieces) == 1:
            return pieces[0] in (BISHOP, KNIGHT)
        if len(pieces) == 2:
            return material[WHITE] == [BISHOP] and material[BLACK] == [BISHOP]
        return False

    # -----------------------------------------------------------------------
    # Selection state machine
    # -----------------------------------------------------------------------

    def select_square(self, square: str, side: str) -> SelectionResult:
        """Advance the click state machine for `side`; see the module docstring."""
        if self.is_game_over:
            return SelectionResult(False, None, [])
        if side != self.active_color:
            return SelectionResult(False, self.selected_square, self.legal_targets_cache[:])

        piece = self.position.piece_at(square)
        own_prefix = "w" if side == WHITE else "b"

        if piece is not None and piece[0] == own_prefix:
            self.selected_square = square
            self.legal_targets_cache = self.legal_targets(square)
            return SelectionResult(False, square, self.legal_targets_cache[:])

        if self.selected_square is not None:
            origin = self.selected_square
            if square in self.legal_targets_cache:
                self.apply_move(self.find_move(origin, square))
                return SelectionResult(True, None, [])
            self.selected_square = None
            self.legal_targets_cache = []
            return SelectionResult(False, None, [])

        return SelectionResult(False, None, [])

    # -----------------------------------------------------------------------
    # Presentation helpers and snapshots
    # -----------------------------------------------------------------------

    def status_text(self) -> str:
        """One-line summary, worded from the point of view of player_color."""
        color_name = "White" if self.active_color == WHITE else "Black"
        outcome = self.result.outcome
        if outcome == ONGOING:
            turn = "Your move" if self.active_color == self.player_color else "Computer's move"
            return f"{color_name} to move. {turn}."
        if outcome == CHECKMATE:
            winner = "White" if self.result.winner == WHITE else "Black"
            verdict = "You win." if self.result.winner == self.player_color else "Computer wins."
            return f"Checkmate. {winner} wins. {verdict}"
        if outcome == STALEMATE:
            return "Draw by stalemate."
        return f"Draw: {self.result.reason}."

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible snapshot; from_dict() reverses it exactly."""
        position = self.position
        return {
            "board": board_to_map(position.board),
            "activeColor": position.active_color,
            "playerColor": self.player_color,
            "castlingRights": position.castling.to_dict(),
            "enPassantTarget": (
                index_to_algebraic(position.en_passant) if position.en_passant is not None else None
            ),
            "halfmoveClock": position.halfmove_clock,
            "fullmoveNumber": position.fullmove_number,
            "moveHistory": self.move_history[:],
            "lastMove": dict(self.last_move) if self.last_move else None,
            "lastMoveText": self.last_move_text,
            "result": self.result.to_dict() if self.result.is_over else None,
            "repetitionMap": [[key, count] for key, count in self.repetitions.items()],
            "gameOver": self.is_game_over,
            "statusText": self.status_text(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameState":
        """
        Rebuild a GameState from a to_dict() snapshot.

        Raises:
            PositionError: for missing or malformed fields.
            InvalidSquare: for malformed coordinates.
        """
        try:
            active = data["activeColor"]
            player = data.get("playerColor", WHITE)
            if active not in COLORS or player not in COLORS:
                raise PositionError(f"Invalid color in snapshot: {active!r}, {player!r}")
            ep = data.get("enPassantTarget")
            position = Position(
                board=map_to_board(data["board"]),
                active_color=active,
                castling=CastlingRights.from_dict(data["castlingRights"]),
                en_passant=algebraic_to_index(ep) if ep else None,
                halfmove_clock=int(data.get("halfmoveClock", 0)),
                fullmove_number=int(data.get("fullmoveNumber", 1)),
            )

            state = cls(position, player, recompute=False)
            state.move_history = [str(entry) for entry in data.get("moveHistory") or []]
            last_move = data.get("lastMove")
            if last_move:
                state.last_move = {
                    "from": index_to_algebraic(algebraic_to_index(last_move["from"])),
                    "to": index_to_algebraic(algebraic_to_index(last_move["to"])),
                }
            last_move_text = data.get("lastMoveText")
            state.last_move_text = str(last_move_text) if last_move_text else None

            pairs = data.get("repetitionMap")
            if pairs:
                state.repetitions = {str(key): int(count) for key, count in pairs}
            else:
                state.repetitions = {position.repetition_key(): 1}

            result = data.get("result")
            state.result = GameResult.from_dict(result) if result else GameResult()
        except ChessError:
            raise
        except KeyError as exc:
            raise PositionError(f"Snapshot is missing {exc}") from exc
        except (AttributeError, TypeError, ValueError) as exc:
            raise PositionError(f"Malformed snapshot: {exc}") from exc

        if not state.result.is_over:
            state.update_result()
        return state

    def __repr__(self) -> str:
        return f"GameState({self.position.to_fen()!r}, result={self.result.outcome})"

