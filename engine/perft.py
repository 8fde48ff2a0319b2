"""
Perft: count leaf nodes of the legal move tree to a fixed depth.

The counts from well-known positions are published, so perft is the
standard way to validate a move generator. divide() splits the total per
root move, which narrows a mismatch down to a single subtree.
"""

from engine.position import Position
from engine.rules import legal_moves


def perft(position: Position, depth: int) -> int:
    """Number of legal move paths of exactly `depth` plies."""
    if depth <= 0:
        return 1
    moves = legal_moves(position)
    if depth == 1:
        return len(moves)
    total = 0
    for move in moves:
        child = position.copy()
        child.apply_move(move)
        total += perft(child, depth - 1)
    return total


def divide(position: Position, depth: int) -> dict[str, int]:
    """Perft count per root move, keyed by UCI string."""
    counts: dict[str, int] = {}
    for move in legal_moves(position):
        child = position.copy()
        child.apply_move(move)
        counts[move.uci] = perft(child, depth - 1)
    return counts
