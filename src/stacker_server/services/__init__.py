# src/stacker_server/services/__init__.py
"""Business logic services for the Stacker server."""

from .chain import ChainSubmitter
from .identity import HttpNameResolver, NullNameResolver
from .leaderboard import LeaderboardService
from .ledger import RedisRunLedger, RunLedger, RunRecord, SqlRunLedger
from .replay import SessionReplayGuard
from .session import SessionManager
from .submission import SubmissionService

__all__ = [
    "ChainSubmitter",
    "HttpNameResolver",
    "NullNameResolver",
    "LeaderboardService",
    "RedisRunLedger",
    "RunLedger",
    "RunRecord",
    "SqlRunLedger",
    "SessionReplayGuard",
    "SessionManager",
    "SubmissionService",
]
