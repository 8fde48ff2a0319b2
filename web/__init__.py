"""
Web application package for the chess engine.

Provides a FastAPI-based REST API for playing against the engine: in-memory
game sessions plus a stateless move endpoint. Run with
`uvicorn web.app:app` from the repo root.
"""
