# src/stacker_server/main.py
"""Main entry point for the Stacker server."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stacker_server.api.v1 import (
    leaderboard_router,
    runs_router,
    sessions_router,
    system_router,
)
from stacker_server.api.v1.dependencies import get_name_resolver
from stacker_server.core.settings import settings
from stacker_server.db.session import create_tables
from stacker_server.services.chain import get_chain_submitter

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Stacker API",
    description="Signed play sessions, on-chain score submission and leaderboard",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_origin_regex=settings.cors_origin_regex,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Include API routers
app.include_router(sessions_router, prefix="/api")
app.include_router(runs_router, prefix="/api")
app.include_router(leaderboard_router, prefix="/api")
app.include_router(system_router, prefix="/api")


@app.exception_handler(RequestValidationError)
async def bad_body_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as 400 with a short message."""
    logger.debug("Rejected malformed request: %s", exc.errors())
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Bad body"})


@app.on_event("startup")
async def on_startup() -> None:
    if settings.ledger_backend == "sql":
        create_tables()
    chain = get_chain_submitter()
    if chain.enabled:
        logger.info("Server wallet (_game): %s on chain %d", chain.address, settings.chain_id)
    else:
        logger.warning("RPC_URL, CONTRACT_ADDR or SERVER_PRIVATE_KEY missing; submissions will fail")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await get_name_resolver().close()


@app.get("/health")
async def health_check() -> dict[str, object]:
    """Health check endpoint to verify the service is running."""
    chain = get_chain_submitter()
    return {
        "status": "ok",
        "chainId": settings.chain_id,
        "serverWallet": chain.address,
        "ledgerBackend": settings.ledger_backend,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("stacker_server.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
