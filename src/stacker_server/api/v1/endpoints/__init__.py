# src/stacker_server/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .leaderboard import router as leaderboard_router
from .runs import router as runs_router
from .sessions import router as sessions_router
from .system import router as system_router

__all__ = [
    "leaderboard_router",
    "runs_router",
    "sessions_router",
    "system_router",
]
