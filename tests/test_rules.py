import chess
import pytest

from engine.board import algebraic_to_index as sq
from engine.constants import BLACK, WHITE
from engine.errors import MissingKingError
from engine.perft import divide, perft
from engine.position import Position
from engine.rules import (
    analyze_position,
    find_king,
    has_legal_move,
    is_in_check,
    is_square_attacked,
    legal_moves,
    legal_moves_from,
)

KIWIPETE = "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1"

ORACLE_FENS = [
    "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1",
    KIWIPETE,
    "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1",
    "r3k2r/Pppp1ppp/1b3nbN/nP6/BBP1P3/q4N2/Pp1P2PP/R2Q1RK1 w kq - 0 1",
    "rnbq1k1r/pp1Pbppp/2p5/8/2B5/8/PPP1NnPP/RNBQK2R w KQ - 1 8",
    "r4rk1/1pp1qppp/p1np1n2/2b1p1B1/2B1P1b1/P1NP1N2/1PP1QPPP/R4RK1 w - - 0 10",
    "rnbqkbnr/ppp1p1pp/8/3pPp2/8/8/PPPP1PPP/RNBQKBNR w KQkq f6 0 3",
    "4k3/8/8/8/8/8/4q3/4K3 w - - 0 1",
    "8/8/8/2k5/3Pp3/8/8/4K3 b - d3 0 1",
]


def uci_set(position: Position) -> set[str]:
    return {move.uci for move in legal_moves(position)}


@pytest.mark.parametrize("fen", ORACLE_FENS)
def test_legal_moves_match_python_chess(fen: str) -> None:
    expected = {move.uci() for move in chess.Board(fen).legal_moves}
    assert uci_set(Position.from_fen(fen)) == expected


@pytest.mark.parametrize("fen", ORACLE_FENS)
def test_check_detection_matches_python_chess(fen: str) -> None:
    board = chess.Board(fen)
    has_moves, in_check = analyze_position(Position.from_fen(fen))
    assert in_check == board.is_check()
    assert has_moves == any(True for _ in board.legal_moves)


@pytest.mark.parametrize("depth, expected", [(1, 20), (2, 400), (3, 8_902)])
def test_perft_from_start(depth: int, expected: int) -> None:
    assert perft(Position.starting(), depth) == expected


@pytest.mark.parametrize("depth, expected", [(1, 48), (2, 2_039)])
def test_perft_kiwipete(depth: int, expected: int) -> None:
    assert perft(Position.from_fen(KIWIPETE), depth) == expected


@pytest.mark.slow
def test_perft_from_start_depth_four() -> None:
    assert perft(Position.starting(), 4) == 197_281


def test_divide_sums_to_perft() -> None:
    position = Position.starting()
    split = divide(position, 2)
    assert len(split) == 20
    assert split["e2e4"] == 20
    assert sum(split.values()) == 400


def test_perft_does_not_modify_position() -> None:
    position = Position.from_fen(KIWIPETE)
    perft(position, 2)
    assert position.to_fen() == KIWIPETE


def test_starting_position_has_twenty_moves() -> None:
    moves = legal_moves(Position.starting())
    assert len(moves) == 20
    assert all(not m.is_capture for m in moves)


def test_legal_moves_from_one_square() -> None:
    moves = legal_moves_from(Position.starting(), sq("g1"))
    assert sorted(m.uci for m in moves) == ["g1f3", "g1h3"]
    assert legal_moves_from(Position.starting(), sq("e8")) == []


def test_pinned_piece_cannot_move() -> None:
    position = Position.from_fen("4r1k1/8/8/8/8/8/4B3/4K3 w - - 0 1")
    assert legal_moves_from(position, sq("e2")) == []


def test_king_cannot_step_into_attack() -> None:
    position = Position.from_fen("4k3/8/8/8/8/8/3r4/4K3 w - - 0 1")
    targets = {m.uci for m in legal_moves_from(position, sq("e1"))}
    # d1, e2 and f2 are covered by the rook; the rook itself is undefended.
    assert targets == {"e1d2", "e1f1"}


def test_castling_through_attacked_square_is_illegal() -> None:
    position = Position.from_fen("4k3/8/8/8/8/8/5r2/R3K2R w KQ - 0 1")
    ucis = uci_set(position)
    assert "e1g1" not in ucis
    assert "e1c1" in ucis


def test_castling_out_of_check_is_illegal() -> None:
    position = Position.from_fen("4r1k1/8/8/8/8/8/8/R3K2R w KQ - 0 1")
    ucis = uci_set(position)
    assert "e1g1" not in ucis
    assert "e1c1" not in ucis


def test_castling_needs_empty_squares_and_rights() -> None:
    blocked = Position.from_fen("4k3/8/8/8/8/8/8/RN2K1NR w KQ - 0 1")
    assert "e1g1" not in uci_set(blocked)
    assert "e1c1" not in uci_set(blocked)

    no_rights = Position.from_fen("4k3/8/8/8/8/8/8/R3K2R w - - 0 1")
    assert "e1g1" not in uci_set(no_rights)


def test_castling_needs_the_rook_on_its_corner() -> None:
    # Rights claim K but the h1 rook is missing.
    position = Position.from_fen("4k3/8/8/8/8/8/8/R3K3 w KQ - 0 1")
    ucis = uci_set(position)
    assert "e1g1" not in ucis
    assert "e1c1" in ucis


def test_castling_move_flags() -> None:
    position = Position.from_fen("r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1")
    by_uci = {m.uci: m for m in legal_moves(position)}
    assert by_uci["e1g1"].is_castle_kingside
    assert by_uci["e1c1"].is_castle_queenside


def test_en_passant_only_right_after_double_push() -> None:
    position = Position.from_fen("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 1")
    move = next(m for m in legal_moves(position) if m.uci == "e5d6")
    assert move.is_en_passant
    assert move.captured == "bP"

    stale = Position.from_fen("4k3/8/8/3pP3/8/8/8/4K3 w - - 0 1")
    assert "e5d6" not in uci_set(stale)


def test_en_passant_that_exposes_king_is_illegal() -> None:
    position = Position.from_fen("8/8/8/K2pP2r/8/8/8/4k3 w - d6 0 1")
    assert "e5d6" not in uci_set(position)


def test_promotion_expands_to_four_pieces() -> None:
    position = Position.from_fen("3r3k/4P3/8/8/8/8/8/4K3 w - - 0 1")
    ucis = uci_set(position)
    assert {"e7e8q", "e7e8r", "e7e8b", "e7e8n"} <= ucis
    assert {"e7d8q", "e7d8r", "e7d8b", "e7d8n"} <= ucis
    captures = [m for m in legal_moves(position) if m.to_sq == sq("d8")]
    assert all(m.captured == "bR" for m in captures)


def test_attack_and_check_queries() -> None:
    position = Position.from_fen("4k3/8/8/8/8/8/8/4K2R b - - 0 1")
    assert is_square_attacked(position, sq("h8"), WHITE)
    assert not is_square_attacked(position, sq("d5"), WHITE)
    assert not is_in_check(position)

    checked = Position.from_fen("4k3/8/8/8/8/8/8/4R1K1 b - - 0 1")
    assert is_in_check(checked)
    assert is_in_check(checked, BLACK)
    assert not is_in_check(checked, WHITE)


def test_pawn_attacks_are_diagonal_only() -> None:
    position = Position.from_fen("4k3/8/8/8/4p3/8/8/4K3 w - - 0 1")
    assert is_square_attacked(position, sq("d3"), BLACK)
    assert is_square_attacked(position, sq("f3"), BLACK)
    assert not is_square_attacked(position, sq("e3"), BLACK)


def test_checkmate_and_stalemate_have_no_moves() -> None:
    mate = Position.from_fen("rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3")
    assert not has_legal_move(mate)
    assert analyze_position(mate) == (False, True)

    stalemate = Position.from_fen("7k/5Q2/6K1/8/8/8/8/8 b - - 0 1")
    assert not has_legal_move(stalemate)
    assert analyze_position(stalemate) == (False, False)


def test_find_king_requires_a_king() -> None:
    position = Position.from_fen("8/8/8/8/8/8/8/4K3 w - - 0 1")
    assert find_king(position.board, WHITE) == sq("e1")
    with pytest.raises(MissingKingError):
        find_king(position.board, BLACK)
