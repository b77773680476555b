# src/stacker_server/api/v1/endpoints/leaderboard.py
"""Leaderboard and history endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from stacker_server.api.v1.dependencies import LeaderboardServiceDep
from stacker_server.core.errors import StoreFault
from stacker_server.core.settings import settings
from stacker_server.schemas.leaderboard import LeaderboardEntryResponse
from stacker_server.schemas.run import HistoryEntryResponse
from stacker_server.utils.wallet import is_wallet

MAX_PAGE_SIZE = 200

router = APIRouter(tags=["leaderboard"])


def _store_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Leaderboard store unavailable",
    )


@router.get("/leaderboard", response_model=list[LeaderboardEntryResponse])
async def get_leaderboard(
    service: LeaderboardServiceDep,
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = settings.leaderboard_size,
) -> list[LeaderboardEntryResponse]:
    """Return wallets ranked by lifetime total score."""
    try:
        entries = await service.top(limit)
    except StoreFault as err:
        raise _store_unavailable() from err
    return [
        LeaderboardEntryResponse(
            wallet=entry.wallet,
            username=entry.username,
            total_score=entry.total_score,
            rank=entry.rank,
        )
        for entry in entries
    ]


@router.get("/history", response_model=list[HistoryEntryResponse])
async def get_history(
    service: LeaderboardServiceDep,
    wallet: Annotated[str, Query(description="Wallet address")],
    limit: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = settings.history_limit,
) -> list[HistoryEntryResponse]:
    """Return a wallet's recorded runs, newest first."""
    if not is_wallet(wallet):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed wallet address")
    try:
        records = await service.history(wallet, limit)
    except StoreFault as err:
        raise _store_unavailable() from err
    return [
        HistoryEntryResponse(timestamp=r.timestamp, score=r.score, tx_reference=r.tx_reference)
        for r in records
    ]
