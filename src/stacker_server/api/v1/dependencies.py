"""Shared API dependencies wiring services to request handlers.

Each provider returns a process-wide instance built from settings; tests swap
them through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from stacker_server.services.chain import ChainSubmitter, get_chain_submitter
from stacker_server.services.identity import NameResolver, build_name_resolver
from stacker_server.services.leaderboard import LeaderboardService
from stacker_server.services.ledger import RunLedger, build_run_ledger
from stacker_server.services.replay import SessionReplayGuard, build_replay_guard
from stacker_server.services.session import SessionManager, build_session_manager
from stacker_server.services.submission import SubmissionService, load_submission_policy


@lru_cache(maxsize=1)
def get_session_manager() -> SessionManager:
    return build_session_manager()


@lru_cache(maxsize=1)
def get_run_ledger() -> RunLedger:
    return build_run_ledger()


@lru_cache(maxsize=1)
def get_replay_guard() -> SessionReplayGuard:
    return build_replay_guard()


@lru_cache(maxsize=1)
def get_name_resolver() -> NameResolver:
    return build_name_resolver()


def get_chain_submitter_dep() -> ChainSubmitter:
    return get_chain_submitter()


SessionManagerDep = Annotated[SessionManager, Depends(get_session_manager)]
RunLedgerDep = Annotated[RunLedger, Depends(get_run_ledger)]
ReplayGuardDep = Annotated[SessionReplayGuard, Depends(get_replay_guard)]
NameResolverDep = Annotated[NameResolver, Depends(get_name_resolver)]
ChainSubmitterDep = Annotated[ChainSubmitter, Depends(get_chain_submitter_dep)]


def get_submission_service(
    sessions: SessionManagerDep,
    chain: ChainSubmitterDep,
    ledger: RunLedgerDep,
    replay_guard: ReplayGuardDep,
) -> SubmissionService:
    """Assemble the submission workflow for a request."""
    return SubmissionService(
        sessions,
        chain,
        ledger,
        policy=load_submission_policy(),
        replay_guard=replay_guard,
    )


def get_leaderboard_service(ledger: RunLedgerDep, resolver: NameResolverDep) -> LeaderboardService:
    """Assemble the leaderboard views for a request."""
    return LeaderboardService(ledger, resolver)


SubmissionServiceDep = Annotated[SubmissionService, Depends(get_submission_service)]
LeaderboardServiceDep = Annotated[LeaderboardService, Depends(get_leaderboard_service)]
