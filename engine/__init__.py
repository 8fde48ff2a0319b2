"""
Chess engine package.

This package implements the rules of chess and a classical engine to play
them: legal move generation with castling, en passant, and promotion, game
state with checkmate/stalemate/draw detection, and a minimax search with
alpha-beta pruning, quiescence search, and time-budgeted progressive
deepening.

Modules:
    constants   — Colors, piece values, PST arrays, and search parameters
    errors      — Error hierarchy shared by the engine and front ends
    board       — Square and piece-code encoding (pure functions)
    move        — Immutable Move record
    position    — Position, castling rights, FEN, move application
    rules       — Pseudo-legal/legal move generation, attacks, check
    perft       — Move-tree node counting for generator validation
    game_state  — Session state, result detection, snapshots
    evaluate    — Static position evaluation (material + piece-square tables)
    search      — Minimax search, progressive deepening, time management
    game        — Human-versus-engine session orchestrator
"""
