"""
Position: the canonical chess position and its transition function.

A Position owns its board list and its CastlingRights record outright.
copy() produces a fully independent clone, which is what the search relies
on: every branch applies its move to its own copy, so sibling branches never
alias each other's state.

apply_move() mutates in place and performs every placement, clock, and
rights update a legal move implies. Session bookkeeping (history,
repetition counts, results) lives in GameState on top of this.
"""

from dataclasses import dataclass, field

from engine.board import (
    Board,
    algebraic_to_index,
    empty_board,
    index_to_algebraic,
    make_piece,
    opposite_color,
    piece_color,
    piece_type,
    starting_board,
)
from engine.constants import BLACK, KING, PAWN, PIECE_TYPES, WHITE
from engine.errors import InvalidSquare, PositionError
from engine.move import Move

# Corner squares whose rook governs each castling right.
A1, H1, A8, H8 = 0, 7, 56, 63


@dataclass
class CastlingRights:
    """Four independent castling flags."""

    white_kingside: bool = True
    white_queenside: bool = True
    black_kingside: bool = True
    black_queenside: bool = True

    def copy(self) -> "CastlingRights":
        return CastlingRights(
            self.white_kingside,
            self.white_queenside,
            self.black_kingside,
            self.black_queenside,
        )

    def kingside(self, color: str) -> bool:
        return self.white_kingside if color == WHITE else self.black_kingside

    def queenside(self, color: str) -> bool:
        return self.white_queenside if color == WHITE else self.black_queenside

    def clear(self, color: str) -> None:
        if color == WHITE:
            self.white_kingside = self.white_queenside = False
        else:
            self.black_kingside = self.black_queenside = False

    def to_fen(self) -> str:
        text = (
            ("K" if self.white_kingside else "")
            + ("Q" if self.white_queenside else "")
            + ("k" if self.black_kingside else "")
            + ("q" if self.black_queenside else "")
        )
        return text or "-"

    @classmethod
    def from_fen(cls, text: str) -> "CastlingRights":
        if text != "-" and (not text or set(text) - set("KQkq")):
            raise PositionError(f"Invalid castling field: {text!r}")
        return cls("K" in text, "Q" in text, "k" in text, "q" in text)

    def to_dict(self) -> dict[str, dict[str, bool]]:
        return {
            WHITE: {"kingSide": self.white_kingside, "queenSide": self.white_queenside},
            BLACK: {"kingSide": self.black_kingside, "queenSide": self.black_queenside},
        }

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, bool]]) -> "CastlingRights":
        try:
            return cls(
                bool(data[WHITE]["kingSide"]),
                bool(data[WHITE]["queenSide"]),
                bool(data[BLACK]["kingSide"]),
                bool(data[BLACK]["queenSide"]),
            )
        except (KeyError, TypeError) as exc:
            raise PositionError(f"Invalid castling rights: {data!r}") from exc


@dataclass
class Position:
    """
    Board, side to move, castling rights, en-passant target, and clocks.

    Attributes:
        board:            64 cells, a1 = 0, each a piece code or None.
        active_color:     "white" or "black".
        castling:         CastlingRights record.
        en_passant:       Index of the square a capturing pawn would land
                          on, set only right after a two-square push.
        halfmove_clock:   Plies since the last pawn move or capture.
        fullmove_number:  Starts at 1, incremented after each Black move.
    """

    board: Board = field(default_factory=starting_board)
    active_color: str = WHITE
    castling: CastlingRights = field(default_factory=CastlingRights)
    en_passant: int | None = None
    halfmove_clock: int = 0
    fullmove_number: int = 1

    @classmethod
    def starting(cls) -> "Position":
        return cls()

    def copy(self) -> "Position":
        return Position(
            board=self.board[:],
            active_color=self.active_color,
            castling=self.castling.copy(),
            en_passant=self.en_passant,
            halfmove_clock=self.halfmove_clock,
            fullmove_number=self.fullmove_number,
        )

    def piece_at(self, square: int | str) -> str | None:
        if isinstance(square, str):
            square = algebraic_to_index(square)
        return self.board[square]

    # -----------------------------------------------------------------------
    # Transition
    # -----------------------------------------------------------------------

    def apply_move(self, move: Move) -> None:
        """
        Apply a legal move in place.

        Order of effects: halfmove clock, en-passant target cleared, origin
        vacated, en-passant victim removed, castling rook relocated, piece
        (or promoted piece) placed, en-passant target set after a double
        push, castling rights updated, side to move flipped, fullmove
        number advanced after Black's move.
        """
        board = self.board
        mover = self.active_color
        moving = board[move.from_sq]
        is_pawn = moving is not None and moving[1] == PAWN

        if is_pawn or move.captured is not None or move.is_en_passant:
            self.halfmove_clock = 0
        else:
            self.halfmove_clock += 1

        self.en_passant = None
        board[move.from_sq] = None

        if move.is_en_passant:
            # The passed pawn sits beside the origin, behind the target square.
            board[(move.from_sq // 8) * 8 + move.to_sq % 8] = None

        if move.is_castle_kingside or move.is_castle_queenside:
            rank_base = move.from_sq - move.from_sq % 8
            if move.is_castle_kingside:
                rook_from, rook_to = rank_base + 7, rank_base + 5
            else:
                rook_from, rook_to = rank_base, rank_base + 3
            board[rook_to] = board[rook_from]
            board[rook_from] = None

        if move.promotion:
            board[move.to_sq] = make_piece(mover, move.promotion)
        else:
            board[move.to_sq] = moving

        if is_pawn and abs(move.to_sq - move.from_sq) == 16:
            self.en_passant = (move.from_sq + move.to_sq) // 2

        self._update_castling(move, moving)

        self.active_color = opposite_color(mover)
        if mover == BLACK:
            self.fullmove_number += 1

    def _update_castling(self, move: Move, moving: str | None) -> None:
        rights = self.castling
        if moving is not None and moving[1] == KING:
            rights.clear(piece_color(moving))

        touched = (move.from_sq, move.to_sq)
        board = self.board
        # A corner vacated, captured on, or no longer holding its own rook
        # loses the matching right for good.
        if H1 in touched or board[H1] != "wR":
            rights.white_kingside = False
        if A1 in touched or board[A1] != "wR":
            rights.white_queenside = False
        if H8 in touched or board[H8] != "bR":
            rights.black_kingside = False
        if A8 in touched or board[A8] != "bR":
            rights.black_queenside = False

    # -----------------------------------------------------------------------
    # Keys and FEN
    # -----------------------------------------------------------------------

    def placement_fen(self) -> str:
        rows = []
        for rank in range(7, -1, -1):
            row = ""
            empty = 0
            for file in range(8):
                piece = self.board[rank * 8 + file]
                if piece is None:
                    empty += 1
                    continue
                if empty:
                    row += str(empty)
                    empty = 0
                letter = piece[1]
                row += letter if piece[0] == "w" else letter.lower()
            if empty:
                row += str(empty)
            rows.append(row)
        return "/".join(rows)

    def repetition_key(self) -> str:
        """
        Key for threefold repetition: placement, side to move, castling
        rights, and en-passant square. Clocks are deliberately excluded.
        """
        ep = index_to_algebraic(self.en_passant) if self.en_passant is not None else "-"
        side = "w" if self.active_color == WHITE else "b"
        return f"{self.placement_fen()} {side} {self.castling.to_fen()} {ep}"

    def to_fen(self) -> str:
        return f"{self.repetition_key()} {self.halfmove_clock} {self.fullmove_number}"

    @classmethod
    def from_fen(cls, fen: str) -> "Position":
        """
        Parse a FEN string. The clock fields are optional and default to
        0 and 1.

        Raises:
            PositionError: if any field is malformed.
        """
        fields = fen.split()
        if len(fields) not in (4, 6):
            raise PositionError(f"FEN needs 4 or 6 fields: {fen!r}")

        board = empty_board()
        rows = fields[0].split("/")
        if len(rows) != 8:
            raise PositionError(f"FEN placement needs 8 ranks: {fields[0]!r}")
        for row_index, row in enumerate(rows):
            rank = 7 - row_index
            file = 0
            for char in row:
                if char.isdigit():
                    file += int(char)
                    continue
                kind = char.upper()
                if kind not in PIECE_TYPES or file > 7:
                    raise PositionError(f"Invalid FEN rank: {row!r}")
                color = WHITE if char.isupper() else BLACK
                board[rank * 8 + file] = make_piece(color, kind)
                file += 1
            if file != 8:
                raise PositionError(f"FEN rank does not span 8 files: {row!r}")

        if fields[1] not in ("w", "b"):
            raise PositionError(f"Invalid side to move: {fields[1]!r}")
        active = WHITE if fields[1] == "w" else BLACK

        castling = CastlingRights.from_fen(fields[2])

        en_passant = None
        if fields[3] != "-":
            try:
                en_passant = algebraic_to_index(fields[3])
            except InvalidSquare as exc:
                raise PositionError(f"Invalid en-passant square: {fields[3]!r}") from exc

        halfmove, fullmove = 0, 1
        if len(fields) == 6:
            try:
                halfmove, fullmove = int(fields[4]), int(fields[5])
            except ValueError as exc:
                raise PositionError(f"Invalid FEN clocks: {fen!r}") from exc

        return cls(
            board=board,
            active_color=active,
            castling=castling,
            en_passant=en_passant,
            halfmove_clock=halfmove,
            fullmove_number=fullmove,
        )

    def __str__(self) -> str:
        return self.to_fen()


def count_material(board: Board) -> dict[str, list[str]]:
    """Non-king piece types per color, used by the insufficient-material rule."""
    material: dict[str, list[str]] = {WHITE: [], BLACK: []}
    for piece in board:
        if piece is None or piece_type(piece) == KING:
            continue
        material[piece_color(piece)].append(piece[1])
    return material

