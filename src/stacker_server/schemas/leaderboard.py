"""Leaderboard schemas."""

from pydantic import BaseModel, ConfigDict, Field


class LeaderboardEntryResponse(BaseModel):
    """A single ranked wallet."""

    wallet: str
    username: str | None = None
    total_score: int = Field(..., alias="totalScore")
    rank: int = Field(..., ge=1)

    model_config = ConfigDict(populate_by_name=True)
