"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .leaderboard import LeaderboardEntryResponse
from .run import HistoryEntryResponse, SubmitRunRequest, SubmitRunResponse
from .session import StartSessionRequest, StartSessionResponse

__all__ = [
    "LeaderboardEntryResponse",
    "HistoryEntryResponse", "SubmitRunRequest", "SubmitRunResponse",
    "StartSessionRequest", "StartSessionResponse",
]
