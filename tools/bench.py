#!/usr/bin/env python3
"""
Benchmark: move-generator throughput and search nodes per move.

Two sections:
  perft  — counts leaf nodes from a few reference positions in-process and
           checks them against the published totals. A mismatch means the
           move generator is broken; the nodes/s figure tracks its speed.
  search — drives the UCI engine as a subprocess at a chosen level and
           parses the final 'info depth' line for depth, nodes, and NPS.

Run before and after a change to the generator or the search to quantify
it. Lower node counts at the same depth mean better pruning or ordering.

Usage: python3 tools/bench.py [--level N] [--movetime MS] [--skip-perft]
"""
import argparse
import os
import subprocess
import sys
import time

REPO = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO not in sys.path:
    sys.path.insert(0, REPO)

from engine.constants import DEFAULT_LEVEL  # noqa: E402
from engine.perft import perft  # noqa: E402
from engine.position import Position  # noqa: E402

PYTHON = sys.executable
ENGINE = os.path.join(REPO, "interface", "uci.py")

# (label, FEN, depth, expected leaf count)
PERFT_POSITIONS = [
    ("Start",     "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1", 3, 8_902),
    ("Kiwipete",  "r3k2r/p1ppqpb1/bn2pnp1/3PN3/1p2P3/2N2Q1p/PPPBBPPP/R3K2R w KQkq - 0 1", 2, 2_039),
    ("Endgame",   "8/2p5/3p4/KP5r/1R3p1k/8/4P1P1/8 w - - 0 1", 3, 2_812),
    ("Promotion", "r3k2r/Pppp1ppp/1b3nbN/nP6/BBP1P3/q4N2/Pp1P2PP/R2Q1RK1 w kq - 0 1", 3, 9_467),
]

# Fixed search positions spanning opening, middlegame, and endgame.
SEARCH_POSITIONS = [
    ("Start",        "startpos"),
    ("After 1.e4",   "startpos moves e2e4"),
    ("Italian",      "startpos moves e2e4 e7e5 g1f3 b8c6 f1c4"),
    ("Mid-open",     "fen r1bqkb1r/pppp1ppp/2n2n2/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4"),
    ("Complex mid",  "fen r2q1rk1/ppp2ppp/2np1n2/2b1p1B1/2B1P1b1/2NP1N2/PPP2PPP/R2Q1RK1 w - - 0 8"),
    ("Rook ending",  "fen 8/5pk1/6p1/7p/7P/6P1/5PK1/8 w - - 0 1"),
    ("Pawn race",    "fen 8/1p4k1/p7/P1K5/8/8/8/8 w - - 0 1"),
]


def run_perft() -> bool:
    """Run every perft position; return True if all counts match."""
    print(f"{'Position':<12} {'Depth':>5} {'Nodes':>10} {'Expected':>10} {'kN/s':>8}  OK")
    print("-" * 56)
    all_ok = True
    for label, fen, depth, expected in PERFT_POSITIONS:
        position = Position.from_fen(fen)
        start = time.perf_counter()
        nodes = perft(position, depth)
        elapsed = max(time.perf_counter() - start, 1e-9)
        ok = nodes == expected
        all_ok = all_ok and ok
        print(
            f"{label:<12} {depth:>5} {nodes:>10,} {expected:>10,} "
            f"{nodes / elapsed / 1000:>8.1f}  {'yes' if ok else 'NO'}"
        )
    return all_ok


def run_position(label: str, pos_spec: str, level: int, movetime: int) -> dict:
    """Run a single position through the engine and return metrics.

    Spawns the UCI engine as a subprocess, sets the level, sends the
    position with the given movetime, then parses the final 'info depth'
    line for node count, NPS, and time.

    Args:
        label: Human-readable position name for display.
        pos_spec: UCI position string (e.g. "startpos" or "fen <FEN>").
        level: Engine level 1-5.
        movetime: Search budget in milliseconds.

    Returns:
        Dict with keys: label, move, depth, score, nodes, nps, time_ms.
    """
    env = {**os.environ, "PYTHONPATH": REPO}
    proc = subprocess.Popen(
        [PYTHON, ENGINE],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.DEVNULL,
        text=True,
        env=env,
    )
    cmds = (
        f"uci\nsetoption name Level value {level}\nisready\n"
        f"position {pos_spec}\ngo movetime {movetime}\n"
    )
    proc.stdin.write(cmds)
    proc.stdin.flush()

    nodes = time_ms = nps = depth = score = 0
    move = "(none)"
    for line in proc.stdout:
        line = line.strip()
        if line.startswith("info depth"):
            parts = line.split()

            def _get(key: str) -> int:
                try:
                    return int(parts[parts.index(key) + 1])
                except (ValueError, IndexError):
                    return 0

            depth = _get("depth")
            score = _get("cp")
            nodes = _get("nodes")
            nps = _get("nps")
            time_ms = _get("time")
        elif line.startswith("bestmove"):
            move = line.split()[1]
            break

    proc.stdin.write("quit\n")
    proc.stdin.flush()
    proc.wait(timeout=5)

    return {
        "label": label,
        "move": move,
        "depth": depth,
        "score": score,
        "nodes": nodes,
        "nps": nps,
        "time_ms": time_ms,
    }


def run_search(level: int, movetime: int) -> None:
    print(f"Engine: {ENGINE}  level={level}  movetime={movetime}ms")
    print(
        f"{'Position':<14} {'Move':<7} {'Depth':>5} {'Score':>6} "
        f"{'Nodes':>8} {'NPS':>8} {'Time(ms)':>9}"
    )
    print("-" * 68)

    results = []
    for label, pos in SEARCH_POSITIONS:
        r = run_position(label, pos, level, movetime)
        results.append(r)
        print(
            f"{r['label']:<14} {r['move']:<7} {r['depth']:>5} {r['score']:>6} "
            f"{r['nodes']:>8,} {r['nps']:>8,} {r['time_ms']:>9,}"
        )

    valid = [r for r in results if r["nodes"] > 0]
    if valid:
        avg_nodes = sum(r["nodes"] for r in valid) // len(valid)
        avg_time = sum(r["time_ms"] for r in valid) // len(valid)
        avg_nps = sum(r["nps"] for r in valid) // len(valid)
        print("-" * 68)
        print(
            f"{'AVERAGE':<14} {'':<7} {'':<5} {'':<6} "
            f"{avg_nodes:>8,} {avg_nps:>8,} {avg_time:>9,}"
        )


def main() -> None:
    """Run the perft check and the search benchmark, printing summary tables."""
    parser = argparse.ArgumentParser(description="Chess engine benchmark")
    parser.add_argument("--level", type=int, default=DEFAULT_LEVEL)
    parser.add_argument("--movetime", type=int, default=10_000)
    parser.add_argument("--skip-perft", action="store_true")
    args = parser.parse_args()

    print(f"Chess engine benchmark: {PYTHON}")
    print()
    if not args.skip_perft:
        if not run_perft():
            print("\nperft mismatch: move generator is wrong, search numbers are meaningless")
            sys.exit(1)
        print()
    run_search(args.level, args.movetime)


if __name__ == "__main__":
    main()
