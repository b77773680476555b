# src/stacker_server/api/v1/endpoints/runs.py
"""Run submission endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from stacker_server.api.v1.dependencies import SubmissionServiceDep
from stacker_server.core.errors import ClientFault, UpstreamFault
from stacker_server.schemas.run import SubmitRunRequest, SubmitRunResponse
from stacker_server.services.submission import RunSubmission

logger = logging.getLogger(__name__)

router = APIRouter(tags=["runs"])


@router.post("/submit", response_model=SubmitRunResponse)
async def submit_run(payload: SubmitRunRequest, service: SubmissionServiceDep) -> SubmitRunResponse:
    """Validate a finished run and record its score on-chain.

    Returns once the transaction receipt is observed. ``ledgerPersisted`` is
    false when the chain write succeeded but the local leaderboard could not
    be updated.
    """
    submission = RunSubmission(
        session_id=payload.session_id,
        token=payload.token,
        wallet=payload.wallet,
        score_delta=payload.score_delta,
        tx_delta=payload.tx_delta,
        username=payload.username,
    )
    try:
        result = await service.submit(submission)
    except ClientFault as err:
        raise HTTPException(status_code=err.status_code, detail=err.message) from err
    except UpstreamFault as err:
        logger.error("Chain submission failed for %s: %r", payload.wallet, err.__cause__ or err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Submission failed, please retry",
        ) from err

    return SubmitRunResponse(tx_hash=result.tx_hash, ledger_persisted=result.ledger_persisted)
