"""Tests for leaderboard and history views."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from stacker_server.core.errors import StoreFault
from stacker_server.services.identity import NullNameResolver
from stacker_server.services.leaderboard import LeaderboardEntry, LeaderboardService
from stacker_server.services.ledger import RunRecord, SqlRunLedger
from tests.conftest import WALLET_A, WALLET_B, WALLET_C, RecordingNameResolver


def _seed(ledger: SqlRunLedger, runs: list[tuple[str, int]]) -> None:
    for ts, (wallet, score) in enumerate(runs, start=1):
        ledger.append(RunRecord(wallet=wallet, score=score, timestamp=ts, tx_reference=f"0x{ts:x}"))


@pytest.mark.asyncio
async def test_top_ranks_totals_with_names(
    ledger: SqlRunLedger, name_resolver: RecordingNameResolver
) -> None:
    _seed(ledger, [(WALLET_A, 10), (WALLET_B, 30), (WALLET_A, 25), (WALLET_C, 5)])
    name_resolver.names[WALLET_B] = "bee"
    service = LeaderboardService(ledger, name_resolver)

    top = await service.top(10)

    assert top == [
        LeaderboardEntry(WALLET_A, 35, 1, None),
        LeaderboardEntry(WALLET_B, 30, 2, "bee"),
        LeaderboardEntry(WALLET_C, 5, 3, None),
    ]


@pytest.mark.asyncio
async def test_top_truncates_and_keeps_tie_order(
    ledger: SqlRunLedger, null_resolver: NullNameResolver
) -> None:
    _seed(ledger, [(WALLET_C, 20), (WALLET_A, 20), (WALLET_B, 20)])
    service = LeaderboardService(ledger, null_resolver)

    first = await service.top(2)
    second = await service.top(2)

    assert [e.wallet for e in first] == [WALLET_C, WALLET_A]
    assert first == second
    assert [e.rank for e in first] == [1, 2]


@pytest.mark.asyncio
async def test_non_positive_limit_returns_empty(ledger: SqlRunLedger) -> None:
    _seed(ledger, [(WALLET_A, 1)])
    service = LeaderboardService(ledger)

    assert await service.top(0) == []
    assert await service.history(WALLET_A, 0) == []


@pytest.mark.asyncio
async def test_failing_resolver_degrades_to_stored_or_missing_names(
    ledger: SqlRunLedger, name_resolver: RecordingNameResolver
) -> None:
    ledger.append(RunRecord(WALLET_A, 50, 1, "0x1", username="stored-name"))
    ledger.append(RunRecord(WALLET_B, 40, 2, "0x2"))
    name_resolver.raise_on = {WALLET_A, WALLET_B}
    service = LeaderboardService(ledger, name_resolver)

    top = await service.top(5)

    assert [(e.wallet, e.username, e.total_score) for e in top] == [
        (WALLET_A, "stored-name", 50),
        (WALLET_B, None, 40),
    ]
    assert sorted(name_resolver.lookups) == sorted([WALLET_A, WALLET_B])


@pytest.mark.asyncio
async def test_resolved_name_wins_over_stored_name(
    ledger: SqlRunLedger, name_resolver: RecordingNameResolver
) -> None:
    ledger.append(RunRecord(WALLET_A, 50, 1, "0x1", username="old"))
    name_resolver.names[WALLET_A] = "fresh"

    [entry] = await LeaderboardService(ledger, name_resolver).top(1)
    assert entry.username == "fresh"


@pytest.mark.asyncio
async def test_history_lowercases_wallet(ledger: SqlRunLedger) -> None:
    _seed(ledger, [(WALLET_A, 5), (WALLET_A, 3), (WALLET_A, 2)])
    service = LeaderboardService(ledger)

    history = await service.history("0x" + WALLET_A[2:].upper(), 2)

    assert [r.score for r in history] == [2, 3]


@pytest.mark.asyncio
async def test_store_faults_propagate() -> None:
    broken = MagicMock()
    broken.top_totals.side_effect = StoreFault("down")
    broken.history.side_effect = StoreFault("down")
    service = LeaderboardService(broken)

    with pytest.raises(StoreFault):
        await service.top(5)
    with pytest.raises(StoreFault):
        await service.history(WALLET_A, 5)
