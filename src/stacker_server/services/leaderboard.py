"""Read-side views over the run ledger: ranked totals and wallet history."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from starlette.concurrency import run_in_threadpool

from stacker_server.core.errors import StoreFault
from stacker_server.services.identity import NameResolver, NullNameResolver
from stacker_server.services.ledger import RunLedger, RunRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaderboardEntry:
    """One ranked wallet."""

    wallet: str
    total_score: int
    rank: int
    username: str | None = None


class LeaderboardService:
    """Derive leaderboard and history views; never a source of truth."""

    def __init__(self, ledger: RunLedger, resolver: NameResolver | None = None) -> None:
        self._ledger = ledger
        self._resolver = resolver or NullNameResolver()

    async def _resolve(self, wallet: str) -> str | None:
        try:
            return await self._resolver.resolve(wallet)
        except Exception:
            logger.debug("Name resolver raised for %s", wallet, exc_info=True)
            return None

    async def top(self, n: int) -> list[LeaderboardEntry]:
        """Return the ``n`` highest lifetime totals with 1-based ranks.

        Ties keep the order in which wallets first appeared in the ledger.
        """
        if n <= 0:
            return []
        try:
            totals = await run_in_threadpool(self._ledger.top_totals, n)
        except StoreFault:
            logger.exception("Leaderboard read failed")
            raise

        names = await asyncio.gather(*(self._resolve(entry.wallet) for entry in totals))
        return [
            LeaderboardEntry(
                wallet=entry.wallet,
                total_score=entry.total_score,
                rank=index,
                username=name or entry.username,
            )
            for index, (entry, name) in enumerate(zip(totals, names), start=1)
        ]

    async def history(self, wallet: str, limit: int) -> list[RunRecord]:
        """Return the wallet's runs, newest first."""
        if limit <= 0:
            return []
        try:
            return await run_in_threadpool(self._ledger.history, wallet.strip().lower(), limit)
        except StoreFault:
            logger.exception("History read failed for %s", wallet)
            raise
