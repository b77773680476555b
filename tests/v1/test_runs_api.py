"""Tests for the session and submission endpoints."""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import status
from fastapi.testclient import TestClient

from stacker_server.services.ledger import SqlRunLedger
from tests.conftest import WALLET_A, WALLET_B, FakeChainSubmitter, FakeClock


def _start(client: TestClient, wallet: str = WALLET_A) -> dict[str, Any]:
    r = client.post("/api/start-session", json={"wallet": wallet})
    assert r.status_code == status.HTTP_200_OK
    return r.json()


def _submit(client: TestClient, session: dict[str, Any], wallet: str = WALLET_A, **body: Any):
    payload = {
        "sessionId": session["sessionId"],
        "token": session["token"],
        "wallet": wallet,
        "scoreDelta": 5,
    }
    payload.update(body)
    return client.post("/api/submit", json=payload)


def test_start_session_returns_signed_session(client: TestClient) -> None:
    data = _start(client)
    assert set(data) == {"sessionId", "token", "crossAppId"}
    assert len(data["sessionId"]) >= 10
    assert "." in data["token"]


@pytest.mark.parametrize("body", [{"wallet": "0x1234"}, {"wallet": "not a wallet"}, {}])
def test_start_session_rejects_bad_wallet(client: TestClient, body: dict[str, Any]) -> None:
    r = client.post("/api/start-session", json=body)
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"detail": "Bad body"}


def test_submit_records_run(
    client: TestClient, clock: FakeClock, chain: FakeChainSubmitter, ledger: SqlRunLedger
) -> None:
    session = _start(client)
    clock.advance(5_000)

    r = _submit(client, session, scoreDelta=42, txDelta=2)

    assert r.status_code == status.HTTP_200_OK
    data = r.json()
    assert data["ok"] is True
    assert data["ledgerPersisted"] is True
    assert data["txHash"].startswith("0x")
    assert chain.calls == [(WALLET_A, 42, 2)]
    assert ledger.total(WALLET_A) == 42


def test_submit_defaults_tx_delta_to_one(
    client: TestClient, clock: FakeClock, chain: FakeChainSubmitter
) -> None:
    session = _start(client)
    clock.advance(5_000)

    assert _submit(client, session).status_code == status.HTTP_200_OK
    assert chain.calls == [(WALLET_A, 5, 1)]


def test_submit_too_early_is_rejected(client: TestClient, clock: FakeClock) -> None:
    session = _start(client)
    clock.advance(1_000)

    r = _submit(client, session)
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"detail": "Session too short"}


def test_suspicious_score_is_rejected(
    client: TestClient, clock: FakeClock, chain: FakeChainSubmitter, ledger: SqlRunLedger
) -> None:
    session = _start(client)
    clock.advance(3_000)

    r = _submit(client, session, scoreDelta=500_000)

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"detail": "Suspicious score"}
    assert chain.calls == []
    assert ledger.total(WALLET_A) == 0


def test_submission_for_other_wallet_is_unauthorized(client: TestClient, clock: FakeClock) -> None:
    session = _start(client, WALLET_A)
    clock.advance(5_000)

    r = _submit(client, session, wallet=WALLET_B)
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.json() == {"detail": "Invalid session"}


def test_tampered_token_is_unauthorized(client: TestClient, clock: FakeClock) -> None:
    session = _start(client)
    clock.advance(5_000)
    token = session["token"]
    session["token"] = token[:-1] + ("A" if token[-1] != "A" else "B")

    r = _submit(client, session)
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_expired_session_is_unauthorized(client: TestClient, clock: FakeClock) -> None:
    session = _start(client)
    clock.advance(2 * 3_600_000)

    r = _submit(client, session)
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.json() == {"detail": "Session expired"}


def test_session_reuse_is_unauthorized(
    client: TestClient, clock: FakeClock, ledger: SqlRunLedger
) -> None:
    session = _start(client)
    clock.advance(5_000)

    assert _submit(client, session).status_code == status.HTTP_200_OK
    r = _submit(client, session)

    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.json() == {"detail": "Session already used"}
    assert ledger.total(WALLET_A) == 5


@pytest.mark.parametrize(
    "body",
    [
        {"scoreDelta": -1},
        {"scoreDelta": 1_000_000},
        {"scoreDelta": "lots"},
        {"scoreDelta": "50"},
        {"scoreDelta": True},
        {"scoreDelta": 50.0},
        {"txDelta": "2"},
        {"txDelta": False},
        {"txDelta": 101},
        {"sessionId": "short"},
        {"wallet": "0x1234"},
    ],
)
def test_malformed_submission_is_bad_body(
    client: TestClient, clock: FakeClock, chain: FakeChainSubmitter, body: dict[str, Any]
) -> None:
    session = _start(client)
    clock.advance(5_000)

    r = _submit(client, session, **body)

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"detail": "Bad body"}
    assert chain.calls == []


def test_chain_failure_returns_500_and_records_nothing(
    client: TestClient, clock: FakeClock, chain: FakeChainSubmitter
) -> None:
    session = _start(client)
    clock.advance(5_000)
    chain.fail()

    r = _submit(client, session)

    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.json() == {"detail": "Submission failed, please retry"}
    assert client.get("/api/leaderboard").json() == []
    assert client.get("/api/history", params={"wallet": WALLET_A}).json() == []
