"""Run submission workflow.

A submission moves strictly through::

    RECEIVED -> SESSION_VALIDATED -> BOUNDS_CHECKED -> CHAIN_CONFIRMED
             -> LEDGER_APPENDED -> DONE

and lands in ERROR from any step. Every check that can reject a request runs
before the chain call. The ledger append runs only after the chain receipt,
and its failure does not turn a confirmed chain write into an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from stacker_server.core.errors import (
    MalformedSubmissionError,
    SessionReplayError,
    StackerError,
    SuspiciousScoreError,
)
from stacker_server.core.settings import settings
from stacker_server.services.ledger import RunLedger, RunRecord
from stacker_server.services.replay import SessionReplayGuard
from stacker_server.services.session import SessionClaims, SessionManager
from stacker_server.utils.wallet import is_wallet, normalize_wallet

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    """Steps of the submission workflow."""

    RECEIVED = "received"
    SESSION_VALIDATED = "session_validated"
    BOUNDS_CHECKED = "bounds_checked"
    CHAIN_CONFIRMED = "chain_confirmed"
    LEDGER_APPENDED = "ledger_appended"
    DONE = "done"
    ERROR = "error"


class ScoreWriter(Protocol):
    async def submit(self, player: str, score_delta: int, tx_delta: int) -> str: ...


@dataclass(frozen=True)
class SubmissionPolicy:
    """Tunable limits applied to every submission."""

    score_max_delta: int = 999_999
    tx_max_delta: int = 100
    score_floor: int = 10
    score_rate_ms: int = 200
    bound_multiplier: int = 10
    single_use: bool = True
    replay_ttl_seconds: int = 3_600

    def score_limit(self, elapsed_ms: int) -> int:
        """Largest score delta accepted after ``elapsed_ms`` of play."""
        max_allowed = max(self.score_floor, elapsed_ms // self.score_rate_ms)
        return max_allowed * self.bound_multiplier


@dataclass(frozen=True)
class RunSubmission:
    """A finished run as reported by the client."""

    session_id: str
    token: str
    wallet: str
    score_delta: int
    tx_delta: int = 1
    username: str | None = None


@dataclass(frozen=True)
class SubmissionResult:
    """Outcome of a submission whose chain write was confirmed."""

    tx_hash: str
    ledger_persisted: bool
    state: SubmissionState


class SubmissionService:
    """Validate, record on-chain, then append to the run ledger."""

    def __init__(
        self,
        sessions: SessionManager,
        chain: ScoreWriter,
        ledger: RunLedger,
        *,
        policy: SubmissionPolicy | None = None,
        replay_guard: SessionReplayGuard | None = None,
    ) -> None:
        self._sessions = sessions
        self._chain = chain
        self._ledger = ledger
        self.policy = policy or SubmissionPolicy()
        self._replay_guard = replay_guard

    def _check_received(self, submission: RunSubmission) -> str:
        if not submission.session_id or not submission.token:
            raise MalformedSubmissionError("Bad body")
        if not is_wallet(submission.wallet):
            raise MalformedSubmissionError("Bad body")
        if type(submission.score_delta) is not int or not (
            0 <= submission.score_delta <= self.policy.score_max_delta
        ):
            raise MalformedSubmissionError("Bad body")
        if type(submission.tx_delta) is not int or not (
            0 <= submission.tx_delta <= self.policy.tx_max_delta
        ):
            raise MalformedSubmissionError("Bad body")
        return normalize_wallet(submission.wallet)

    def _check_bounds(self, claims: SessionClaims, score_delta: int) -> None:
        elapsed = self._sessions.elapsed_ms(claims)
        if score_delta > self.policy.score_limit(elapsed):
            raise SuspiciousScoreError()

    async def submit(self, submission: RunSubmission) -> SubmissionResult:
        """Run the workflow for one submission.

        Raises:
            ClientFault: Input, session or bounds rejection; nothing was written.
            UpstreamFault: The chain write failed; nothing was written locally.
        """
        state = SubmissionState.RECEIVED
        try:
            wallet = self._check_received(submission)

            claims = self._sessions.validate_submission(
                submission.token, submission.session_id, wallet
            )
            state = SubmissionState.SESSION_VALIDATED

            self._check_bounds(claims, submission.score_delta)
            if self.policy.single_use and self._replay_guard is not None:
                claimed = await run_in_threadpool(
                    self._replay_guard.claim, claims.session_id, self.policy.replay_ttl_seconds
                )
                if not claimed:
                    raise SessionReplayError()
            state = SubmissionState.BOUNDS_CHECKED

            tx_hash = await self._chain.submit(wallet, submission.score_delta, submission.tx_delta)
            state = SubmissionState.CHAIN_CONFIRMED
        except StackerError as exc:
            logger.info(
                "Submission for %s moved %s -> %s: %s",
                submission.wallet,
                state.value,
                SubmissionState.ERROR.value,
                exc,
            )
            raise

        record = RunRecord(
            wallet=wallet,
            score=submission.score_delta,
            timestamp=self._sessions.now(),
            tx_reference=tx_hash,
            username=submission.username,
        )
        ledger_persisted = True
        try:
            await run_in_threadpool(self._ledger.append, record)
            state = SubmissionState.LEDGER_APPENDED
        except Exception:
            ledger_persisted = False
            logger.exception(
                "Chain write %s for %s confirmed but ledger append failed; "
                "leaderboard will undercount until reconciled",
                tx_hash,
                wallet,
            )

        logger.info(
            "Submission for %s done: score=%d tx=%s last_state=%s",
            wallet,
            submission.score_delta,
            tx_hash,
            state.value,
        )
        return SubmissionResult(tx_hash=tx_hash, ledger_persisted=ledger_persisted, state=SubmissionState.DONE)


def load_submission_policy() -> SubmissionPolicy:
    """Build the submission policy from global settings."""
    return SubmissionPolicy(
        score_max_delta=settings.score_max_delta,
        tx_max_delta=settings.tx_max_delta,
        score_floor=settings.score_floor,
        score_rate_ms=settings.score_rate_ms,
        bound_multiplier=settings.score_bound_multiplier,
        single_use=settings.session_single_use,
        replay_ttl_seconds=settings.session_ttl_seconds,
    )
