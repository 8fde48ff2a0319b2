"""
Static evaluation: material balance plus piece-square table bonuses.

A chess engine needs to assign a numeric score to any board position so the
search function can compare moves and choose the best one. This module
scores each piece with its material value plus a positional bonus read from
a piece-square table (PST): knights are rewarded for central squares, pawns
for advancing, kings for staying tucked behind their pawns.

The score is returned from the perspective of a requested color rather than
the side to move. The search is minimax, not negamax: it maximizes at nodes
where the root color moves and minimizes elsewhere, always scoring for the
root color.
"""

from engine.board import Board
from engine.constants import PIECE_VALUES, PST
from engine.position import Position


def evaluate(position: Position | Board, for_color: str) -> int:
    """
    Centipawn evaluation from for_color's perspective.

    The square indexing convention for PST lookup:
        - White piece on square sq: use index sq ^ 56 (flip rank, since PST
          index 0 = a8 visually but a1 = 0 on the board)
        - Black piece on square sq: use index sq directly (the vertical
          mirror of the white view)

    Args:
        position: A Position, or a bare 64-cell board. Not modified.
        for_color: "white" or "black".

    Returns:
        Material plus PST score for for_color minus the same for the
        opponent. Positive = for_color is ahead. Deterministic.

    Example:
        >>> from engine.position import Position
        >>> evaluate(Position(), "white")  # symmetric start scores zero
        0
    """
    board = position.board if isinstance(position, Position) else position
    own = "w" if for_color == "white" else "b"
    score = 0

    for sq, piece in enumerate(board):
        if piece is None:
            continue
        kind = piece[1]
        if piece[0] == "w":
            value = PIECE_VALUES[kind] + PST[kind][sq ^ 56]
        else:
            value = PIECE_VALUES[kind] + PST[kind][sq]
        score += value if piece[0] == own else -value

    return score
