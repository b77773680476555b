"""Run submission and history schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stacker_server.core.settings import settings
from stacker_server.utils.wallet import normalize_wallet


class SubmitRunRequest(BaseModel):
    """A finished run reported by the client."""

    session_id: str = Field(..., alias="sessionId", min_length=10)
    token: str = Field(..., min_length=10)
    wallet: str = Field(..., description="Player wallet address")
    score_delta: int = Field(
        ...,
        alias="scoreDelta",
        strict=True,
        ge=0,
        le=settings.score_max_delta,
        description="Score earned in this run (not a running total)",
    )
    tx_delta: int = Field(
        settings.default_tx_delta,
        alias="txDelta",
        strict=True,
        ge=0,
        le=settings.tx_max_delta,
        description="Transaction count to add on-chain",
    )
    username: str | None = Field(None, max_length=64, description="Optional display name hint")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("wallet")
    @classmethod
    def _normalize_wallet(cls, value: str) -> str:
        return normalize_wallet(value)


class SubmitRunResponse(BaseModel):
    """Confirmation of the on-chain write."""

    ok: bool = True
    tx_hash: str = Field(..., alias="txHash")
    ledger_persisted: bool = Field(
        True,
        alias="ledgerPersisted",
        description="False if the run was recorded on-chain but not in the local ledger",
    )

    model_config = ConfigDict(populate_by_name=True)


class HistoryEntryResponse(BaseModel):
    """One past run of a wallet."""

    timestamp: int = Field(..., description="Epoch milliseconds")
    score: int
    tx_reference: str = Field(..., alias="txReference")

    model_config = ConfigDict(populate_by_name=True)
