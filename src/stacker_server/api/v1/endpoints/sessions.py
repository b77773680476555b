# src/stacker_server/api/v1/endpoints/sessions.py
"""Play session endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from stacker_server.api.v1.dependencies import SessionManagerDep
from stacker_server.core.settings import settings
from stacker_server.schemas.session import StartSessionRequest, StartSessionResponse

router = APIRouter(tags=["sessions"])


@router.post("/start-session", response_model=StartSessionResponse)
async def start_session(
    payload: StartSessionRequest,
    sessions: SessionManagerDep,
) -> StartSessionResponse:
    """Open a play session and return its signed token.

    The token must be presented unchanged with the run submission; it binds
    the submission to this session id and wallet and carries the start time
    used by the duration checks.
    """
    issued = sessions.start_session(payload.wallet)
    return StartSessionResponse(
        session_id=issued.session_id,
        token=issued.token,
        cross_app_id=settings.cross_app_id,
    )
