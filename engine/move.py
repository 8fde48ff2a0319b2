"""
Move representation: an immutable record of a single transition.

Squares are stored as indices (a1 = 0). The moving piece and any captured
piece are stored as piece codes so a move can be notated and ordered
without consulting the board again.
"""

from dataclasses import dataclass
from typing import Any

from engine.board import algebraic_to_index, index_to_algebraic, is_piece_code
from engine.constants import PROMOTION_TYPES
from engine.errors import PositionError


@dataclass(frozen=True)
class Move:
    """
    A single move.

    Attributes:
        from_sq:             Origin square index.
        to_sq:               Destination square index. For castling this is
                             the king's destination (g- or c-file).
        piece:               Code of the moving piece, e.g. "wP".
        captured:            Code of the captured piece, or None. For en
                             passant this is the passed pawn, which does not
                             stand on to_sq.
        promotion:           Promotion type letter (Q, R, B, N) or None.
        is_en_passant:       The move captures en passant.
        is_castle_kingside:  The move castles on the king side.
        is_castle_queenside: The move castles on the queen side.

    At most one of the three flags is set. A promotion may also capture.
    """

    from_sq: int
    to_sq: int
    piece: str
    captured: str | None = None
    promotion: str | None = None
    is_en_passant: bool = False
    is_castle_kingside: bool = False
    is_castle_queenside: bool = False

    def __post_init__(self) -> None:
        flags = (self.is_en_passant, self.is_castle_kingside, self.is_castle_queenside)
        if sum(flags) > 1:
            raise PositionError("A move carries at most one special flag")
        if self.promotion is not None and self.promotion not in PROMOTION_TYPES:
            raise PositionError(f"Invalid promotion piece: {self.promotion!r}")
        if not is_piece_code(self.piece):
            raise PositionError(f"Invalid moving piece: {self.piece!r}")

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    @property
    def is_castle(self) -> bool:
        return self.is_castle_kingside or self.is_castle_queenside

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None

    @property
    def uci(self) -> str:
        """Long algebraic notation, e.g. "e2e4" or "e7e8q"."""
        text = index_to_algebraic(self.from_sq) + index_to_algebraic(self.to_sq)
        if self.promotion:
            text += self.promotion.lower()
        return text

    def __str__(self) -> str:
        return self.uci

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": index_to_algebraic(self.from_sq),
            "to": index_to_algebraic(self.to_sq),
            "piece": self.piece,
            "captured": self.captured,
            "promotion": self.promotion,
            "isEnPassant": self.is_en_passant,
            "isCastleKingSide": self.is_castle_kingside,
            "isCastleQueenSide": self.is_castle_queenside,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Move":
        return cls(
            from_sq=algebraic_to_index(data["from"]),
            to_sq=algebraic_to_index(data["to"]),
            piece=data["piece"],
            captured=data.get("captured"),
            promotion=data.get("promotion"),
            is_en_passant=bool(data.get("isEnPassant", False)),
            is_castle_kingside=bool(data.get("isCastleKingSide", False)),
            is_castle_queenside=bool(data.get("isCastleQueenSide", False)),
        )
