# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LEDGER_BACKEND", "sql")
os.environ.setdefault("IDENTITY_ENABLED", "false")

from stacker_server.api.v1.dependencies import (
    get_chain_submitter_dep,
    get_name_resolver,
    get_replay_guard,
    get_run_ledger,
    get_session_manager,
)
from stacker_server.core.errors import ChainSubmissionError
from stacker_server.core.security import TokenCodec
from stacker_server.db.session import Base
from stacker_server.main import app as fastapi_app
from stacker_server.services.identity import NullNameResolver
from stacker_server.services.ledger import SqlRunLedger
from stacker_server.services.replay import SessionReplayGuard
from stacker_server.services.session import SessionManager

TEST_DB_URL = "sqlite://"
TEST_SECRET = "test-session-secret"
START_MS = 1_700_000_000_000

WALLET_A = "0x" + "a1" * 20
WALLET_B = "0x" + "b2" * 20
WALLET_C = "0x" + "c3" * 20


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = START_MS) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeChainSubmitter:
    """Records score writes instead of sending transactions."""

    enabled = True
    address = "0x" + "5e" * 20

    def __init__(self) -> None:
        self.calls: list[tuple[str, int, int]] = []
        self.fail_with: Exception | None = None

    async def submit(self, player: str, score_delta: int, tx_delta: int) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((player, score_delta, tx_delta))
        return f"0x{len(self.calls):064x}"

    def fail(self, message: str = "rpc unreachable") -> None:
        self.fail_with = ChainSubmissionError(message)


class RecordingNameResolver:
    """Resolver answering from a fixed mapping; can be made to raise."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self.names = names or {}
        self.raise_on: set[str] = set()
        self.lookups: list[str] = []

    async def resolve(self, wallet: str) -> str | None:
        self.lookups.append(wallet)
        if wallet in self.raise_on:
            raise RuntimeError("identity service exploded")
        return self.names.get(wallet)

    async def close(self) -> None:
        return None


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def ledger(engine: Engine) -> Iterator[SqlRunLedger]:
    yield SqlRunLedger(sessionmaker(bind=engine, expire_on_commit=False), retention=200)

    # Ensure each test sees a clean database.
    with engine.begin() as cleanup_conn:
        for table in reversed(Base.metadata.sorted_tables):
            cleanup_conn.execute(table.delete())


@pytest.fixture()
def file_ledger_factory(tmp_path) -> Iterator[Callable[..., SqlRunLedger]]:
    """Build ledgers on a file database so threads get their own connections."""
    engines: list[Engine] = []

    def _factory(retention: int = 200) -> SqlRunLedger:
        file_engine = create_engine(
            f"sqlite:///{tmp_path / 'ledger.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=file_engine)
        engines.append(file_engine)
        return SqlRunLedger(sessionmaker(bind=file_engine), retention=retention)

    try:
        yield _factory
    finally:
        for file_engine in engines:
            file_engine.dispose()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


@pytest.fixture()
def session_manager(codec: TokenCodec, clock: FakeClock) -> SessionManager:
    return SessionManager(codec, min_duration_ms=3_000, ttl_ms=3_600_000, clock=clock)


@pytest.fixture()
def chain() -> FakeChainSubmitter:
    return FakeChainSubmitter()


@pytest.fixture()
def replay_guard() -> SessionReplayGuard:
    return SessionReplayGuard()


@pytest.fixture()
def name_resolver() -> RecordingNameResolver:
    return RecordingNameResolver()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(
    app: FastAPI,
    session_manager: SessionManager,
    ledger: SqlRunLedger,
    chain: FakeChainSubmitter,
    replay_guard: SessionReplayGuard,
    name_resolver: RecordingNameResolver,
) -> Iterator[TestClient]:
    overrides: dict[Callable[..., Any], Callable[..., Any]] = {
        get_session_manager: lambda: session_manager,
        get_run_ledger: lambda: ledger,
        get_chain_submitter_dep: lambda: chain,
        get_replay_guard: lambda: replay_guard,
        get_name_resolver: lambda: name_resolver,
    }
    app.dependency_overrides.update(overrides)
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        for dependency in overrides:
            app.dependency_overrides.pop(dependency, None)


@pytest.fixture()
def null_resolver() -> NullNameResolver:
    return NullNameResolver()
