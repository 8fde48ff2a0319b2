"""
Move generation and attack detection (the rules engine).

Generation is two-staged. pseudo_legal_moves() follows each piece's
movement rules, including castling, en passant, and promotion expansion.
legal_moves() then applies every candidate to a scratch copy of the board
and drops the ones that leave the mover's own king attacked. Simulating
each move is slower than incremental pin detection but has no special
cases to get wrong.

Attack detection works outward from the target square: it looks for an
enemy pawn, knight, or king at the squares that could reach it, and casts
rays for sliders up to the first occupied square. This is exactly the set
of squares the movement rules could capture on.
"""

from typing import Iterable

from engine.board import Board, opposite_color
from engine.constants import (
    BISHOP,
    BLACK,
    COLOR_PREFIX,
    KING,
    KNIGHT,
    PAWN,
    PROMOTION_TYPES,
    QUEEN,
    ROOK,
    WHITE,
)
from engine.errors import MissingKingError
from engine.move import Move
from engine.position import Position

# ---------------------------------------------------------------------------
# Precomputed geometry
# ---------------------------------------------------------------------------

ORTHOGONAL: tuple[tuple[int, int], ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))
DIAGONAL: tuple[tuple[int, int], ...] = ((1, 1), (1, -1), (-1, 1), (-1, -1))
KNIGHT_JUMPS: tuple[tuple[int, int], ...] = (
    (1, 2), (2, 1), (2, -1), (1, -2), (-1, -2), (-2, -1), (-2, 1), (-1, 2),
)
KING_STEPS: tuple[tuple[int, int], ...] = ORTHOGONAL + DIAGONAL


def _targets(square: int, offsets: Iterable[tuple[int, int]]) -> tuple[int, ...]:
    file, rank = square % 8, square // 8
    found = []
    for df, dr in offsets:
        f, r = file + df, rank + dr
        if 0 <= f < 8 and 0 <= r < 8:
            found.append(r * 8 + f)
    return tuple(found)


def _ray(square: int, df: int, dr: int) -> tuple[int, ...]:
    file, rank = square % 8, square // 8
    found = []
    f, r = file + df, rank + dr
    while 0 <= f < 8 and 0 <= r < 8:
        found.append(r * 8 + f)
        f, r = f + df, r + dr
    return tuple(found)


KNIGHT_TARGETS: tuple[tuple[int, ...], ...] = tuple(_targets(sq, KNIGHT_JUMPS) for sq in range(64))
KING_TARGETS: tuple[tuple[int, ...], ...] = tuple(_targets(sq, KING_STEPS) for sq in range(64))
ORTHOGONAL_RAYS: tuple[tuple[tuple[int, ...], ...], ...] = tuple(
    tuple(_ray(sq, df, dr) for df, dr in ORTHOGONAL) for sq in range(64)
)
DIAGONAL_RAYS: tuple[tuple[tuple[int, ...], ...], ...] = tuple(
    tuple(_ray(sq, df, dr) for df, dr in DIAGONAL) for sq in range(64)
)

# Squares an enemy pawn of the given color must stand on to attack sq.
PAWN_ATTACKERS: dict[str, tuple[tuple[int, ...], ...]] = {
    WHITE: tuple(_targets(sq, ((-1, -1), (1, -1))) for sq in range(64)),
    BLACK: tuple(_targets(sq, ((-1, 1), (1, 1))) for sq in range(64)),
}


# ---------------------------------------------------------------------------
# Attack detection
# ---------------------------------------------------------------------------


def _square_attacked(board: Board, square: int, by_color: str) -> bool:
    prefix = COLOR_PREFIX[by_color]

    pawn = prefix + PAWN
    for origin in PAWN_ATTACKERS[by_color][square]:
        if board[origin] == pawn:
            return True

    knight = prefix + KNIGHT
    for origin in KNIGHT_TARGETS[square]:
        if board[origin] == knight:
            return True

    king = prefix + KING
    for origin in KING_TARGETS[square]:
        if board[origin] == king:
            return True

    queen = prefix + QUEEN
    rook = prefix + ROOK
    for ray in ORTHOGONAL_RAYS[square]:
        for origin in ray:
            piece = board[origin]
            if piece is not None:
                if piece == rook or piece == queen:
                    return True
                break

    bishop = prefix + BISHOP
    for ray in DIAGONAL_RAYS[square]:
        for origin in ray:
            piece = board[origin]
            if piece is not None:
                if piece == bishop or piece == queen:
                    return True
                break

    return False


def is_square_attacked(position: Position, square: int, by_color: str) -> bool:
    """Whether any piece of by_color attacks the square."""
    return _square_attacked(position.board, square, by_color)


def find_king(board: Board, color: str) -> int:
    """
    Index of the color's king.

    Raises:
        MissingKingError: if the board has no such king. Positions reachable
            from the standard start always have one.
    """
    king = COLOR_PREFIX[color] + KING
    try:
        return board.index(king)
    except ValueError:
        raise MissingKingError(f"No {color} king on the board") from None


def is_in_check(position: Position, color: str | None = None) -> bool:
    """Whether color (default: side to move) has its king attacked."""
    color = color or position.active_color
    king_square = find_king(position.board, color)
    return _square_attacked(position.board, king_square, opposite_color(color))


# ---------------------------------------------------------------------------
# Pseudo-legal generation
# ---------------------------------------------------------------------------


def pseudo_legal_moves(position: Position) -> list[Move]:
    """All moves that follow piece movement rules for the side to move."""
    board = position.board
    color = position.active_color
    prefix = COLOR_PREFIX[color]
    moves: list[Move] = []

    for square, piece in enumerate(board):
        if piece is None or piece[0] != prefix:
            continue
        kind = piece[1]
        if kind == PAWN:
            _pawn_moves(position, square, piece, moves)
        elif kind == KNIGHT:
            _step_moves(board, square, piece, KNIGHT_TARGETS[square], moves)
        elif kind == BISHOP:
            _slide_moves(board, square, piece, DIAGONAL_RAYS[square], moves)
        elif kind == ROOK:
            _slide_moves(board, square, piece, ORTHOGONAL_RAYS[square], moves)
        elif kind == QUEEN:
            _slide_moves(board, square, piece, ORTHOGONAL_RAYS[square], moves)
            _slide_moves(board, square, piece, DIAGONAL_RAYS[square], moves)
        elif kind == KING:
            _step_moves(board, square, piece, KING_TARGETS[square], moves)
            _castling_moves(position, square, piece, moves)

    return moves


def _pawn_moves(position: Position, square: int, piece: str, moves: list[Move]) -> None:
    board = position.board
    own = piece[0]
    file, rank = square % 8, square // 8
    if own == "w":
        step, start_rank, last_rank = 8, 1, 7
    else:
        step, start_rank, last_rank = -8, 6, 0

    forward = square + step
    if not 0 <= forward < 64:
        return
    if board[forward] is None:
        _add_pawn_move(square, forward, piece, None, forward // 8 == last_rank, moves)
        double = forward + step
        if rank == start_rank and board[double] is None:
            moves.append(Move(square, double, piece))

    for df in (-1, 1):
        target_file = file + df
        if not 0 <= target_file < 8:
            continue
        target = forward + df
        occupant = board[target]
        if occupant is not None:
            if occupant[0] != own:
                _add_pawn_move(square, target, piece, occupant, target // 8 == last_rank, moves)
        elif target == position.en_passant:
            victim = board[rank * 8 + target_file]
            if victim is not None and victim[0] != own and victim[1] == PAWN:
                moves.append(Move(square, target, piece, captured=victim, is_en_passant=True))


def _add_pawn_move(
    origin: int,
    target: int,
    piece: str,
    captured: str | None,
    promotes: bool,
    moves: list[Move],
) -> None:
    if promotes:
        for kind in PROMOTION_TYPES:
            moves.append(Move(origin, target, piece, captured=captured, promotion=kind))
    else:
        moves.append(Move(origin, target, piece, captured=captured))


def _step_moves(
    board: Board, square: int, piece: str, targets: tuple[int, ...], moves: list[Move]
) -> None:
    own = piece[0]
    for target in targets:
        occupant = board[target]
        if occupant is None:
            moves.append(Move(square, target, piece))
        elif occupant[0] != own:
            moves.append(Move(square, target, piece, captured=occupant))


def _slide_moves(
    board: Board,
    square: int,
    piece: str,
    rays: tuple[tuple[int, ...], ...],
    moves: list[Move],
) -> None:
    own = piece[0]
    for ray in rays:
        for target in ray:
            occupant = board[target]
            if occupant is None:
                moves.append(Move(square, target, piece))
                continue
            if occupant[0] != own:
                moves.append(Move(square, target, piece, captured=occupant))
            break


def _castling_moves(position: Position, square: int, piece: str, moves: list[Move]) -> None:
    color = position.active_color
    home = 4 if color == WHITE else 60
    if square != home:
        return
    rights = position.castling
    kingside, queenside = rights.kingside(color), rights.queenside(color)
    if not (kingside or queenside):
        return

    board = position.board
    enemy = opposite_color(color)
    rook = COLOR_PREFIX[color] + ROOK
    if _square_attacked(board, home, enemy):
        return

    if (
        kingside
        and board[home + 3] == rook
        and board[home + 1] is None
        and board[home + 2] is None
        and not _square_attacked(board, home + 1, enemy)
        and not _square_attacked(board, home + 2, enemy)
    ):
        moves.append(Move(home, home + 2, piece, is_castle_kingside=True))

    if (
        queenside
        and board[home - 4] == rook
        and board[home - 1] is None
        and board[home - 2] is None
        and board[home - 3] is None
        and not _square_attacked(board, home - 1, enemy)
        and not _square_attacked(board, home - 2, enemy)
    ):
        moves.append(Move(home, home - 2, piece, is_castle_queenside=True))


# ---------------------------------------------------------------------------
# Legal filtering
# ---------------------------------------------------------------------------


def _placement_after(board: Board, move: Move) -> Board:
    """Board placement after a move; clocks and rights are irrelevant here."""
    after = board[:]
    after[move.from_sq] = None
    if move.is_en_passant:
        after[(move.from_sq // 8) * 8 + move.to_sq % 8] = None
    if move.is_castle_kingside or move.is_castle_queenside:
        base = move.from_sq - move.from_sq % 8
        rook_from, rook_to = (base + 7, base + 5) if move.is_castle_kingside else (base, base + 3)
        after[rook_to] = after[rook_from]
        after[rook_from] = None
    after[move.to_sq] = move.piece[0] + move.promotion if move.promotion else move.piece
    return after


def leaves_king_in_check(position: Position, move: Move) -> bool:
    color = position.active_color
    after = _placement_after(position.board, move)
    king_square = move.to_sq if move.piece[1] == KING else find_king(after, color)
    return _square_attacked(after, king_square, opposite_color(color))


def legal_moves(position: Position) -> list[Move]:
    """Pseudo-legal moves that do not leave the mover's king attacked."""
    return [m for m in pseudo_legal_moves(position) if not leaves_king_in_check(position, m)]


def legal_moves_from(position: Position, square: int) -> list[Move]:
    return [m for m in legal_moves(position) if m.from_sq == square]


def has_legal_move(position: Position) -> bool:
    return any(not leaves_king_in_check(position, m) for m in pseudo_legal_moves(position))


def analyze_position(position: Position) -> tuple[bool, bool]:
    """(has_legal_moves, is_check) for the side to move."""
    return has_legal_move(position), is_in_check(position)
