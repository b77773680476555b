"""Session-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stacker_server.utils.wallet import normalize_wallet


class StartSessionRequest(BaseModel):
    """Request to open a play session for a wallet."""

    wallet: str = Field(..., description="Player wallet address (0x + 40 hex digits)")

    @field_validator("wallet")
    @classmethod
    def _normalize_wallet(cls, value: str) -> str:
        return normalize_wallet(value)


class StartSessionResponse(BaseModel):
    """Signed session handed to the client."""

    session_id: str = Field(..., alias="sessionId", description="Unique session identifier")
    token: str = Field(..., description="Opaque signed session token")
    cross_app_id: str | None = Field(
        None,
        alias="crossAppId",
        description="Identity provider app id for the client wallet login",
    )

    model_config = ConfigDict(populate_by_name=True)
