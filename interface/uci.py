"""
UCI (Universal Chess Interface) protocol handler.

UCI is the standard text-based protocol that allows chess GUIs and testing
tools (like cutechess-cli) to communicate with chess engines. The engine
reads commands from stdin and writes responses to stdout. All output lines
must be flushed immediately — GUI programs won't block waiting for a newline.

Protocol overview:
    GUI → Engine: uci, isready, ucinewgame, setoption, position, go, stop, quit
    Engine → GUI: id name, id author, option, uciok, readyok, info, bestmove

Threading model:
    The UCI loop runs on the main thread and must never block on the search.
    When the GUI sends "go", we spawn a daemon thread to run the search on a
    copy of the position. The main thread continues reading stdin so it can
    handle "stop" at any time. A threading.Event (stop_event) signals the
    search thread to finish with its best move so far.

Critical rule: NEVER print to stdout except for valid UCI responses.
Debug output must go to stderr or be suppressed entirely.
"""

import sys
import os
import threading
import time

# ---------------------------------------------------------------------------
# Path setup: make 'engine' importable when this script is run directly.
# When run as `python interface/uci.py` from the repo root, sys.path may not
# include the repo root, so `import engine` would fail. We fix this by
# inserting the parent directory of this file's parent directory (the repo
# root) at the front of sys.path.
# ---------------------------------------------------------------------------
_REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _REPO_ROOT not in sys.path:
    sys.path.insert(0, _REPO_ROOT)

from engine.constants import DEFAULT_LEVEL, MAX_LEVEL, MIN_LEVEL, WHITE
from engine.errors import ChessError
from engine.position import Position
from engine.rules import legal_moves
from engine.search import clamp_level, search


def _send(line: str) -> None:
    """
    Write a line to stdout and flush immediately.

    UCI requires every output line to be flushed right away. GUIs read
    line-by-line; if the buffer is not flushed, the GUI will hang waiting
    for output that is already in the buffer.
    """
    print(line, flush=True)


def _log(message: str) -> None:
    """Write a debug/error message to stderr; stdout is reserved for UCI."""
    print(message, file=sys.stderr, flush=True)


class UciHandler:
    """
    Stateful handler for the UCI protocol.

    Holds the current position, the difficulty level, and the search thread
    lifecycle. The main UCI loop creates one instance and dispatches
    commands to it.

    Attributes:
        position:      The current position, updated by "position" commands.
        level:         Difficulty level 1-5, set via "setoption name Level".
        search_thread: The active search thread, or None if none is running.
        stop_event:    Threading event shared with the search thread.
    """

    def __init__(self) -> None:
        self.position: Position = Position.starting()
        self.level: int = DEFAULT_LEVEL
        self.search_thread: threading.Thread | None = None
        self.stop_event: threading.Event = threading.Event()

    # -----------------------------------------------------------------------
    # Command handlers
    # -----------------------------------------------------------------------

    def handle_uci(self) -> None:
        """Identify the engine and advertise the Level option."""
        _send("id name PolarisChess")
        _send("id author Polaris Chess Project")
        _send(
            f"option name Level type spin default {DEFAULT_LEVEL} "
            f"min {MIN_LEVEL} max {MAX_LEVEL}"
        )
        _send("uciok")

    def handle_isready(self) -> None:
        _send("readyok")

    def handle_ucinewgame(self) -> None:
        """Stop any running search and reset to the starting position."""
        self._stop_search()
        self.position = Position.starting()

    def handle_setoption(self, tokens: list[str]) -> None:
        """
        Parse "setoption name <id> value <x>". Only Level (alias
        "Skill Level") is recognised; the value is clamped to 1-5.
        """
        if "name" not in tokens or "value" not in tokens:
            return
        name = " ".join(tokens[tokens.index("name") + 1:tokens.index("value")]).lower()
        value = " ".join(tokens[tokens.index("value") + 1:])
        if name in ("level", "skill level"):
            self.level = clamp_level(value)
        else:
            _log(f"uci: ignoring unknown option: {name!r}")

    def handle_position(self, tokens: list[str]) -> None:
        """
        Parse and apply a "position" command.

        Command formats:
            position startpos
            position startpos moves e2e4 e7e5 ...
            position fen <FEN>
            position fen <FEN> moves e2e4 e7e5 ...

        Each move is matched against the legal move list by its UCI string;
        replay stops at the first move that does not match.
        """
        try:
            if not tokens:
                return

            if tokens[0] == "startpos":
                position = Position.starting()
                move_tokens = tokens[2:] if len(tokens) > 1 and tokens[1] == "moves" else []
            elif tokens[0] == "fen":
                if "moves" in tokens:
                    moves_idx = tokens.index("moves")
                    fen = " ".join(tokens[1:moves_idx])
                    move_tokens = tokens[moves_idx + 1:]
                else:
                    fen = " ".join(tokens[1:])
                    move_tokens = []
                position = Position.from_fen(fen)
            else:
                _log(f"uci: unknown position type: {tokens[0]}")
                return

            for uci_move in move_tokens:
                by_uci = {m.uci: m for m in legal_moves(position)}
                move = by_uci.get(uci_move.lower())
                if move is None:
                    _log(f"uci: illegal move in position command: {uci_move}")
                    break
                position.apply_move(move)

            self.position = position

        except ChessError as e:
            _log(f"uci: error in position command: {e}")

    def handle_go(self, tokens: list[str]) -> None:
        """
        Parse a "go" command and start the search in a background thread.

        Supports "movetime <ms>", "wtime/btime [winc/binc]", and "infinite".
        The search works on its own copy of the position, so a following
        "position" command cannot race with it.
        """
        self._stop_search()

        time_limit_ms = self._parse_go_time(tokens)
        self.stop_event = threading.Event()

        position = self.position.copy()
        stop_event = self.stop_event
        level = self.level

        def search_and_reply() -> None:
            """
            Run the search and emit the UCI info + bestmove lines.

            Runs in a daemon thread. The GUI will not make its next move
            until it receives the bestmove line.
            """
            try:
                start = time.monotonic()
                result = search(position, level, time_limit_ms, stop_event=stop_event)
                elapsed_ms = max(1, int((time.monotonic() - start) * 1000))

                if result.move is not None:
                    nps = max(1, result.nodes * 1000 // elapsed_ms)
                    _send(
                        f"info depth {result.depth} score cp {result.score} "
                        f"nodes {result.nodes} nps {nps} time {elapsed_ms}"
                    )
                    _send(f"bestmove {result.move.uci}")
                else:
                    # No legal moves: checkmate or stalemate.
                    _send("bestmove (none)")

            except Exception as e:
                _log(f"search error: {e}")
                _send("bestmove (none)")

        self.search_thread = threading.Thread(target=search_and_reply, daemon=True)
        self.search_thread.start()

    def handle_stop(self) -> None:
        self._stop_search()

    def handle_quit(self) -> None:
        self._stop_search()
        sys.exit(0)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _stop_search(self) -> None:
        """
        Signal the current search thread to stop and wait for it to exit.

        The search polls the event at every node, so it returns promptly;
        the join timeout only guards against a misbehaving thread.
        """
        self.stop_event.set()
        if self.search_thread is not None and self.search_thread.is_alive():
            self.search_thread.join(timeout=2.0)
        self.search_thread = None

    def _parse_go_time(self, tokens: list[str]) -> int:
        """
        Extract the time budget in milliseconds from "go" command tokens.

        Supports:
            movetime <ms>       — use exactly this many milliseconds
            wtime <ms> btime <ms> [winc <ms> binc <ms>]
                                — use 1/40 of remaining time + increment

        If neither is found (e.g. "go infinite"), returns a large value
        so the engine searches to its level's nominal depth.
        """
        params: dict[str, int] = {}
        i = 0
        while i < len(tokens) - 1:
            key = tokens[i]
            try:
                params[key] = int(tokens[i + 1])
                i += 2
            except (ValueError, IndexError):
                i += 1

        if "movetime" in params:
            return params["movetime"]

        color = self.position.active_color
        time_key = "wtime" if color == WHITE else "btime"
        inc_key = "winc" if color == WHITE else "binc"

        if time_key in params:
            time_left = params[time_key]
            increment = params.get(inc_key, 0)
            return max(1, time_left // 40 + increment)

        return 10_000_000  # ~2.8 hours — effectively infinite


def run_uci_loop() -> None:
    """
    Main UCI protocol loop.

    Reads lines from stdin and dispatches each command to the UciHandler.
    Runs until the "quit" command is received or stdin is closed. Each
    command is wrapped in a try/except so that a bug in one handler does not
    crash the engine; errors are logged to stderr and the loop continues.
    """
    handler = UciHandler()

    for raw_line in sys.stdin:
        line = raw_line.strip()
        if not line:
            continue

        tokens = line.split()
        command = tokens[0]
        args = tokens[1:]

        try:
            if command == "uci":
                handler.handle_uci()
            elif command == "isready":
                handler.handle_isready()
            elif command == "ucinewgame":
                handler.handle_ucinewgame()
            elif command == "setoption":
                handler.handle_setoption(args)
            elif command == "position":
                handler.handle_position(args)
            elif command == "go":
                handler.handle_go(args)
            elif command == "stop":
                handler.handle_stop()
            elif command == "quit":
                handler.handle_quit()
            else:
                # Unknown commands are ignored per the UCI specification.
                _log(f"uci: ignoring unknown command: {command!r}")

        except Exception as e:
            _log(f"uci: unhandled error for command {command!r}: {e}")


if __name__ == "__main__":
    run_uci_loop()
