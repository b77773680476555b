# src/stacker_server/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    leaderboard_router,
    runs_router,
    sessions_router,
    system_router,
)

__all__ = [
    "leaderboard_router",
    "runs_router",
    "sessions_router",
    "system_router",
]
