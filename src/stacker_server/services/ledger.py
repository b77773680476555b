"""Append-only run ledger with per-wallet lifetime totals.

The ledger owns the canonical run records. Two interchangeable backends are
provided and exactly one is used per deployment:

- ``SqlRunLedger`` keeps runs and totals in a relational database and bumps
  totals with ``INSERT ... ON CONFLICT DO UPDATE`` inside the append
  transaction.
- ``RedisRunLedger`` keeps totals in a sorted set (``ZINCRBY``) and history
  in capped per-wallet lists, written in a single ``MULTI`` pipeline.

Neither backend reads a total, adds to it in Python and writes it back, so
concurrent appends for the same wallet cannot lose an increment.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import redis
from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stacker_server.core.errors import StoreFault
from stacker_server.core.settings import Settings, settings
from stacker_server.models import Run, WalletTotal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunRecord:
    """A confirmed run. ``score`` is a delta, never a cumulative total."""

    wallet: str
    score: int
    timestamp: int
    tx_reference: str
    username: str | None = None


@dataclass(frozen=True)
class TotalEntry:
    """Lifetime total for one wallet as stored by the ledger."""

    wallet: str
    total_score: int
    username: str | None = None


class RunLedger(Protocol):
    """Storage contract every ledger backend satisfies."""

    def append(self, record: RunRecord) -> None:
        """Persist ``record`` and add its score to the wallet total atomically."""

    def top_totals(self, limit: int) -> list[TotalEntry]:
        """Return up to ``limit`` totals, highest first, ties in first-seen order."""

    def history(self, wallet: str, limit: int) -> list[RunRecord]:
        """Return the wallet's most recent runs, newest first."""

    def total(self, wallet: str) -> int:
        """Return the wallet's lifetime total (0 if it has no runs)."""


class SqlRunLedger:
    """Run ledger stored in SQLite or PostgreSQL."""

    def __init__(self, session_factory: sessionmaker[Session], *, retention: int) -> None:
        self._session_factory = session_factory
        self._retention = retention

    @staticmethod
    def _insert_for(db: Session) -> Any:
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise StoreFault(f"Unsupported database dialect for run ledger: {dialect}")

    def append(self, record: RunRecord) -> None:
        try:
            with self._session_factory() as db, db.begin():
                db.add(
                    Run(
                        wallet=record.wallet,
                        score=record.score,
                        timestamp_ms=record.timestamp,
                        tx_reference=record.tx_reference,
                        username=record.username,
                    )
                )
                db.flush()

                insert = self._insert_for(db)
                stmt = insert(WalletTotal).values(
                    wallet=record.wallet,
                    total_score=record.score,
                    username=record.username,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[WalletTotal.wallet],
                    set_={
                        "total_score": WalletTotal.total_score + stmt.excluded.total_score,
                        "username": func.coalesce(stmt.excluded.username, WalletTotal.username),
                    },
                )
                db.execute(stmt)

                keep = (
                    select(Run.id)
                    .where(Run.wallet == record.wallet)
                    .order_by(Run.id.desc())
                    .limit(self._retention)
                )
                db.execute(
                    delete(Run)
                    .where(Run.wallet == record.wallet, Run.id.not_in(keep))
                    .execution_options(synchronize_session=False)
                )
        except SQLAlchemyError as exc:
            raise StoreFault(f"Run ledger append failed: {exc}") from exc

    def top_totals(self, limit: int) -> list[TotalEntry]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(
                    select(WalletTotal)
                    .order_by(WalletTotal.total_score.desc(), WalletTotal.id.asc())
                    .limit(limit)
                ).all()
                return [
                    TotalEntry(wallet=row.wallet, total_score=int(row.total_score), username=row.username)
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            raise StoreFault(f"Run ledger read failed: {exc}") from exc

    def history(self, wallet: str, limit: int) -> list[RunRecord]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(
                    select(Run).where(Run.wallet == wallet).order_by(Run.id.desc()).limit(limit)
                ).all()
                return [
                    RunRecord(
                        wallet=row.wallet,
                        score=int(row.score),
                        timestamp=int(row.timestamp_ms),
                        tx_reference=row.tx_reference,
                        username=row.username,
                    )
                    for row in rows
                ]
        except SQLAlchemyError as exc:
            raise StoreFault(f"Run ledger read failed: {exc}") from exc

    def total(self, wallet: str) -> int:
        try:
            with self._session_factory() as db:
                value = db.scalar(select(WalletTotal.total_score).where(WalletTotal.wallet == wallet))
                return int(value or 0)
        except SQLAlchemyError as exc:
            raise StoreFault(f"Run ledger read failed: {exc}") from exc


class RedisRunLedger:
    """Run ledger stored in Redis."""

    TOTALS_KEY = "lb:zset"
    USERNAMES_KEY = "usernames:h"
    FIRST_SEEN_KEY = "lb:first_seen"
    SEQUENCE_KEY = "lb:seq"

    def __init__(self, client: Any, *, retention: int) -> None:
        self._redis = client
        self._retention = retention

    @staticmethod
    def history_key(wallet: str) -> str:
        return f"history:{wallet}"

    def append(self, record: RunRecord) -> None:
        entry = json.dumps(
            {"ts": record.timestamp, "score": record.score, "txHash": record.tx_reference}
        )
        key = self.history_key(record.wallet)
        try:
            seq = self._redis.incr(self.SEQUENCE_KEY)
            pipe = self._redis.pipeline(transaction=True)
            pipe.hsetnx(self.FIRST_SEEN_KEY, record.wallet, seq)
            pipe.zincrby(self.TOTALS_KEY, record.score, record.wallet)
            if record.username:
                pipe.hset(self.USERNAMES_KEY, record.wallet, record.username)
            pipe.lpush(key, entry)
            pipe.ltrim(key, 0, self._retention - 1)
            pipe.execute()
        except redis.RedisError as exc:
            raise StoreFault(f"Run ledger append failed: {exc}") from exc

    def top_totals(self, limit: int) -> list[TotalEntry]:
        try:
            pairs = self._redis.zrevrange(self.TOTALS_KEY, 0, limit - 1, withscores=True)
            scores = {member: int(score) for member, score in pairs}
            if len(pairs) == limit and limit > 0:
                # Sorted sets order ties by member name; pull in the whole
                # boundary tie group so first-seen order decides the cut.
                boundary = pairs[-1][1]
                for member in self._redis.zrangebyscore(self.TOTALS_KEY, boundary, boundary):
                    scores.setdefault(member, int(boundary))
            if not scores:
                return []
            wallets = list(scores)
            first_seen = self._redis.hmget(self.FIRST_SEEN_KEY, wallets)
            usernames = self._redis.hmget(self.USERNAMES_KEY, wallets)
        except redis.RedisError as exc:
            raise StoreFault(f"Run ledger read failed: {exc}") from exc

        order = {
            wallet: int(seq) if seq is not None else float("inf")
            for wallet, seq in zip(wallets, first_seen)
        }
        names = dict(zip(wallets, usernames))
        ranked = sorted(wallets, key=lambda w: (-scores[w], order[w]))[:limit]
        return [
            TotalEntry(wallet=w, total_score=scores[w], username=names.get(w) or None)
            for w in ranked
        ]

    def history(self, wallet: str, limit: int) -> list[RunRecord]:
        try:
            raw = self._redis.lrange(self.history_key(wallet), 0, limit - 1)
        except redis.RedisError as exc:
            raise StoreFault(f"Run ledger read failed: {exc}") from exc

        records: list[RunRecord] = []
        for item in raw:
            try:
                data = json.loads(item)
                records.append(
                    RunRecord(
                        wallet=wallet,
                        score=int(data["score"]),
                        timestamp=int(data["ts"]),
                        tx_reference=str(data["txHash"]),
                    )
                )
            except (ValueError, KeyError, TypeError):
                logger.warning("Skipping malformed history entry for %s", wallet)
        return records

    def total(self, wallet: str) -> int:
        try:
            value = self._redis.zscore(self.TOTALS_KEY, wallet)
        except redis.RedisError as exc:
            raise StoreFault(f"Run ledger read failed: {exc}") from exc
        return int(value or 0)


def build_run_ledger(config: Settings | None = None) -> RunLedger:
    """Construct the ledger backend selected by ``LEDGER_BACKEND``."""
    config = config or settings
    if config.ledger_backend == "redis":
        if not config.redis_url:
            raise StoreFault("Redis ledger backend requires REDIS_URL")
        client = redis.from_url(config.redis_url, decode_responses=True)
        return RedisRunLedger(client, retention=config.history_retention)

    from stacker_server.db.session import SessionLocal

    return SqlRunLedger(SessionLocal, retention=config.history_retention)
