"""
Board encoding: pure conversions between square indices, algebraic
coordinates, and piece codes.

The board is a flat list of 64 cells indexed rank-major from a1 = 0 to
h8 = 63. Each cell holds a two-character piece code ("wP", "bK", ...) or
None. Nothing in this module holds state.
"""

from engine.constants import (
    BISHOP,
    BLACK,
    COLOR_PREFIX,
    FILES,
    KING,
    KNIGHT,
    PAWN,
    PIECE_TYPES,
    QUEEN,
    RANKS,
    ROOK,
    WHITE,
)
from engine.errors import InvalidSquare, PositionError

Board = list[str | None]  # always 64 cells

_BACK_RANK: tuple[str, ...] = (ROOK, KNIGHT, BISHOP, QUEEN, KING, BISHOP, KNIGHT, ROOK)


def file_rank_to_index(file: int, rank: int) -> int:
    """Convert 0-based (file, rank) to an index; a1 = 0, h1 = 7, a8 = 56."""
    if not (0 <= file < 8 and 0 <= rank < 8):
        raise InvalidSquare((file, rank))
    return rank * 8 + file


def index_to_file_rank(index: int) -> tuple[int, int]:
    """Convert an index 0-63 to 0-based (file, rank)."""
    if not 0 <= index < 64:
        raise InvalidSquare(index)
    return index % 8, index // 8


def index_to_algebraic(index: int) -> str:
    """Convert an index to its coordinate, e.g. 0 -> "a1", 63 -> "h8"."""
    file, rank = index_to_file_rank(index)
    return FILES[file] + RANKS[rank]


def algebraic_to_index(square: str) -> int:
    """
    Convert a coordinate like "e4" to its index.

    Raises:
        InvalidSquare: if the string is not exactly a file letter a-h
            followed by a rank digit 1-8.
    """
    if not isinstance(square, str) or len(square) != 2:
        raise InvalidSquare(square)
    file = FILES.find(square[0])
    rank = RANKS.find(square[1])
    if file < 0 or rank < 0:
        raise InvalidSquare(square)
    return rank * 8 + file


def opposite_color(color: str) -> str:
    return BLACK if color == WHITE else WHITE


def piece_color(piece: str) -> str:
    """Color of a piece code: "wN" -> "white"."""
    _check_piece(piece)
    return WHITE if piece[0] == "w" else BLACK


def piece_type(piece: str) -> str:
    """Type letter of a piece code: "wN" -> "N"."""
    _check_piece(piece)
    return piece[1]


def make_piece(color: str, kind: str) -> str:
    """Build a piece code from a color and a type letter."""
    if color not in COLOR_PREFIX or kind not in PIECE_TYPES:
        raise PositionError(f"Invalid piece: {color!r} {kind!r}")
    return COLOR_PREFIX[color] + kind


def is_piece_code(piece: object) -> bool:
    return (
        isinstance(piece, str)
        and len(piece) == 2
        and piece[0] in "wb"
        and piece[1] in PIECE_TYPES
    )


def _check_piece(piece: str) -> None:
    if not is_piece_code(piece):
        raise PositionError(f"Invalid piece code: {piece!r}")


def empty_board() -> Board:
    return [None] * 64


def starting_board() -> Board:
    """Board with the standard initial setup."""
    board = empty_board()
    for file, kind in enumerate(_BACK_RANK):
        board[file] = make_piece(WHITE, kind)
        board[8 + file] = make_piece(WHITE, PAWN)
        board[48 + file] = make_piece(BLACK, PAWN)
        board[56 + file] = make_piece(BLACK, kind)
    return board


def board_to_map(board: Board) -> dict[str, str | None]:
    """Map every coordinate "a1".."h8" to its piece code or None."""
    return {index_to_algebraic(i): board[i] for i in range(64)}


def map_to_board(mapping: dict[str, str | None]) -> Board:
    """
    Inverse of board_to_map. Squares missing from the mapping are empty.

    Raises:
        InvalidSquare: for a key that is not a coordinate.
        PositionError: for a value that is not a piece code.
    """
    board = empty_board()
    for square, piece in mapping.items():
        index = algebraic_to_index(square)
        if piece is None or piece == "":
            continue
        _check_piece(piece)
        board[index] = piece
    return board
