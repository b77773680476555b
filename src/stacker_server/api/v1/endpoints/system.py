"""System and transparency endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from stacker_server.api.v1.dependencies import ChainSubmitterDep
from stacker_server.core.settings import settings

router = APIRouter(prefix="/system", tags=["system", "transparency"])


@router.get("/config")
async def get_public_config(chain: ChainSubmitterDep) -> dict[str, object]:
    """Return a sanitized snapshot of public runtime configuration.

    Excludes secrets and connection strings; lets clients show players the
    limits their runs are checked against.
    """
    return {
        "app": {
            "name": settings.app_name,
            "version": settings.app_version,
            "debug": settings.debug,
        },
        "session": {
            "min_duration_ms": settings.session_min_duration_ms,
            "ttl_seconds": settings.session_ttl_seconds,
            "single_use": settings.session_single_use,
        },
        "score": {
            "max_delta": settings.score_max_delta,
            "max_tx_delta": settings.tx_max_delta,
            "floor": settings.score_floor,
            "rate_ms": settings.score_rate_ms,
            "bound_multiplier": settings.score_bound_multiplier,
        },
        "ledger": {
            "backend": settings.ledger_backend,
            "history_retention": settings.history_retention,
            "leaderboard_size": settings.leaderboard_size,
        },
        "chain": {
            "enabled": chain.enabled,
            "chain_id": settings.chain_id,
            "contract": settings.contract_addr,
            "server_wallet": chain.address,
        },
    }
