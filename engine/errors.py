"""
Engine error hierarchy.

User-facing errors derive from ChessError so front ends can catch them in one
place. InvalidSquare and PositionError also derive from ValueError because
they describe malformed input. MissingKingError is an internal fault: it
cannot occur for positions reachable from the standard start.
"""


class ChessError(Exception):
    """Base class for rule and input errors raised by the engine."""


class InvalidSquare(ChessError, ValueError):
    """A coordinate string or index does not name a board square."""

    def __init__(self, square: object) -> None:
        super().__init__(f"Invalid square: {square!r}")
        self.square = square


class PositionError(ChessError, ValueError):
    """Malformed FEN string, snapshot, or piece code."""


class IllegalMove(ChessError):
    """The requested move is not in the legal move set."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class OutOfTurn(ChessError):
    """A side tried to move while it was not its turn."""


class GameAlreadyOver(ChessError):
    """A move was requested after the game reached a terminal result."""


class MissingKingError(RuntimeError):
    """The position has no king for a color that needs one."""
