"""
Engine constants: colors, piece values, piece-square tables, and search
parameters.

All numeric constants used throughout the engine are defined here so that
modules never need to introduce new magic numbers. Centralizing constants
makes tuning and experimentation much easier.

Piece values follow the standard centipawn convention (1 pawn = 100 cp).
"""

# ---------------------------------------------------------------------------
# Colors and piece codes
# ---------------------------------------------------------------------------
# A piece is encoded as a two-character code: color prefix + type letter,
# e.g. "wP", "bK". Colors are plain strings so snapshots stay JSON friendly.

WHITE: str = "white"
BLACK: str = "black"
COLORS: tuple[str, str] = (WHITE, BLACK)

COLOR_PREFIX: dict[str, str] = {WHITE: "w", BLACK: "b"}

PAWN: str = "P"
KNIGHT: str = "N"
BISHOP: str = "B"
ROOK: str = "R"
QUEEN: str = "Q"
KING: str = "K"
PIECE_TYPES: tuple[str, ...] = (PAWN, KNIGHT, BISHOP, ROOK, QUEEN, KING)

# Promotion expansion order. The first entry is also the default used when a
# move request omits the promotion piece.
PROMOTION_TYPES: tuple[str, ...] = (QUEEN, ROOK, BISHOP, KNIGHT)

FILES: str = "abcdefgh"
RANKS: str = "12345678"

STARTING_FEN: str = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

# ---------------------------------------------------------------------------
# Piece values (centipawns)
# ---------------------------------------------------------------------------
# Bishops are slightly stronger than knights (330 vs 320). The king carries no
# material value: it is never traded, so only its square bonus counts.

PAWN_VALUE: int = 100
KNIGHT_VALUE: int = 320
BISHOP_VALUE: int = 330
ROOK_VALUE: int = 500
QUEEN_VALUE: int = 900
KING_VALUE: int = 0

PIECE_VALUES: dict[str, int] = {
    PAWN:   PAWN_VALUE,
    KNIGHT: KNIGHT_VALUE,
    BISHOP: BISHOP_VALUE,
    ROOK:   ROOK_VALUE,
    QUEEN:  QUEEN_VALUE,
    KING:   KING_VALUE,
}

# ---------------------------------------------------------------------------
# Piece-square tables
# ---------------------------------------------------------------------------
# Written visually from White's point of view: the first row is rank 8, the
# last row is rank 1. A white piece on square sq (a1 = 0) reads index sq ^ 56;
# a black piece reads index sq directly, which mirrors the table vertically.

PST_PAWN: tuple[int, ...] = (
      0,   0,   0,   0,   0,   0,   0,   0,
     40,  50,  50,  60,  60,  50,  50,  40,
     10,  10,  20,  35,  35,  20,  10,  10,
      5,   5,  10,  25,  25,  10,   5,   5,
      0,   0,   5,  20,  20,   5,   0,   0,
      5,  -5, -10,   0,   0, -10,  -5,   5,
      5,  10,  10, -20, -20,  10,  10,   5,
      0,   0,   0,   0,   0,   0,   0,   0,
)

PST_KNIGHT: tuple[int, ...] = (
    -50, -40, -30, -30, -30, -30, -40, -50,
    -40, -20,   0,   0,   0,   0, -20, -40,
    -30,   0,  10,  15,  15,  10,   0, -30,
    -30,   5,  15,  20,  20,  15,   5, -30,
    -30,   0,  15,  20,  20,  15,   0, -30,
    -30,   5,  10,  15,  15,  10,   5, -30,
    -40, -20,   0,   5,   5,   0, -20, -40,
    -50, -40, -30, -30, -30, -30, -40, -50,
)

PST_BISHOP: tuple[int, ...] = (
    -20, -10, -10, -10, -10, -10, -10, -20,
    -10,   5,   0,   0,   0,   0,   5, -10,
    -10,  10,  10,  10,  10,  10,  10, -10,
    -10,   0,  10,  10,  10,  10,   0, -10,
    -10,   5,   5,  10,  10,   5,   5, -10,
    -10,   0,   5,  10,  10,   5,   0, -10,
    -10,   0,   0,   0,   0,   0,   0, -10,
    -20, -10, -10, -10, -10, -10, -10, -20,
)

PST_ROOK: tuple[int, ...] = (
      0,   0,   5,  10,  10,   5,   0,   0,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
     -5,   0,   0,   0,   0,   0,   0,  -5,
      5,  10,  10,  10,  10,  10,  10,   5,
      0,   0,   0,   0,   0,   0,   0,   0,
)

PST_QUEEN: tuple[int, ...] = (
    -20, -10, -10,  -5,  -5, -10, -10, -20,
    -10,   0,   5,   0,   0,   0,   0, -10,
    -10,   5,   5,   5,   5,   5,   0, -10,
     -5,   0,   5,   5,   5,   5,   0,  -5,
      0,   0,   5,   5,   5,   5,   0,  -5,
    -10,   5,   5,   5,   5,   5,   0, -10,
    -10,   0,   5,   0,   0,   0,   0, -10,
    -20, -10, -10,  -5,  -5, -10, -10, -20,
)

PST_KING: tuple[int, ...] = (
    -30, -40, -40, -50, -50, -40, -40, -30,
    -30, -40, -40, -50, -50, -40, -40, -30,
    -30, -40, -40, -50, -50, -40, -40, -30,
    -30, -40, -40, -50, -50, -40, -40, -30,
    -20, -30, -30, -40, -40, -30, -30, -20,
    -10, -20, -20, -20, -20, -20, -20, -10,
     20,  20,   0,   0,   0,   0,  20,  20,
     20,  30,  10,   0,   0,  10,  30,  20,
)

PST: dict[str, tuple[int, ...]] = {
    PAWN:   PST_PAWN,
    KNIGHT: PST_KNIGHT,
    BISHOP: PST_BISHOP,
    ROOK:   PST_ROOK,
    QUEEN:  PST_QUEEN,
    KING:   PST_KING,
}

# ---------------------------------------------------------------------------
# Special scores
# ---------------------------------------------------------------------------
# Integers (never floats) so they compare cleanly in alpha-beta. A mate found
# n plies from the root scores MATE_SCORE - n, so faster mates rank higher.

MATE_SCORE: int = 100_000
DRAW_SCORE: int = 0
INFINITY: int = 1_000_000  # Strictly larger than any reachable score

# ---------------------------------------------------------------------------
# Difficulty levels
# ---------------------------------------------------------------------------
# Nominal search depth (plies) and jitter coefficient per level. Jitter picks
# among moves scoring within PAWN_VALUE * jitter * 2 of the best, so lower
# levels play with more variety.

MIN_LEVEL: int = 1
MAX_LEVEL: int = 5
DEFAULT_LEVEL: int = 3

LEVEL_DEPTHS: dict[int, int] = {1: 1, 2: 2, 3: 3, 4: 3, 5: 4}
LEVEL_RANDOMNESS: dict[int, float] = {1: 0.4, 2: 0.25, 3: 0.15, 4: 0.08, 5: 0.05}

# Level 1 keeps this share of the best-scoring moves and picks one at random.
LEVEL1_KEEP_FRACTION: float = 0.4

# Quiescence extends leaf nodes from this level up, following at most this
# many captures per node.
QUIESCENCE_MIN_LEVEL: int = 4
QUIESCENCE_CAPTURE_LIMIT: int = 16

# ---------------------------------------------------------------------------
# Time management
# ---------------------------------------------------------------------------

DEFAULT_TIME_LIMIT_MS: int = 10_000
MIN_THINKING_TIME_MS: int = 1_000
MAX_THINKING_TIME_MS: int = 60_000

# ---------------------------------------------------------------------------
# Draw rules
# ---------------------------------------------------------------------------

FIFTY_MOVE_HALFMOVES: int = 100
REPETITION_LIMIT: int = 3
