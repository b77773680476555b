"""Application settings and configuration.

This module defines all configuration options for the Stacker server.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Stacker Server", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Play sessions
    session_secret: str = Field(alias="SESSION_SECRET")
    session_min_duration_ms: int = Field(default=3_000, ge=0, alias="SESSION_MIN_DURATION_MS")
    session_ttl_seconds: int = Field(default=3_600, ge=0, alias="SESSION_TTL_SECONDS")
    session_single_use: bool = Field(default=True, alias="SESSION_SINGLE_USE")

    # Score guards
    score_max_delta: int = Field(default=999_999, ge=0, alias="SCORE_MAX_DELTA")
    tx_max_delta: int = Field(default=100, ge=0, alias="TX_MAX_DELTA")
    default_tx_delta: int = Field(default=1, ge=0, alias="DEFAULT_TX_DELTA")
    score_floor: int = Field(default=10, ge=0, alias="SCORE_FLOOR")
    score_rate_ms: int = Field(default=200, gt=0, alias="SCORE_RATE_MS")
    score_bound_multiplier: int = Field(default=10, gt=0, alias="SCORE_BOUND_MULTIPLIER")

    # Run ledger storage
    ledger_backend: Literal["sql", "redis"] = Field(default="sql", alias="LEDGER_BACKEND")
    database_url: str = Field(default="sqlite:///./stacker.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    history_retention: int = Field(default=200, gt=0, alias="HISTORY_RETENTION")
    leaderboard_size: int = Field(default=50, gt=0, alias="LEADERBOARD_SIZE")
    history_limit: int = Field(default=50, gt=0, alias="HISTORY_LIMIT")

    # Chain access
    rpc_url: str | None = Field(default=None, alias="RPC_URL")
    contract_addr: str | None = Field(default=None, alias="CONTRACT_ADDR")
    server_private_key: str | None = Field(default=None, alias="SERVER_PRIVATE_KEY")
    chain_id: int = Field(default=10143, alias="CHAIN_ID")
    chain_receipt_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        alias="CHAIN_RECEIPT_TIMEOUT_SECONDS",
    )
    cross_app_id: str | None = Field(default=None, alias="CROSS_APP_ID")

    # Display name lookups
    identity_enabled: bool = Field(default=True, alias="IDENTITY_ENABLED")
    identity_url: str = Field(
        default="https://monad-games-id-site.vercel.app/api/check-wallet",
        alias="IDENTITY_URL",
    )
    identity_timeout_seconds: float = Field(default=2.0, gt=0, alias="IDENTITY_TIMEOUT_SECONDS")
    identity_cache_seconds: int = Field(default=300, ge=0, alias="IDENTITY_CACHE_SECONDS")

    # Game registration (scripts/register_game.py)
    game_name: str = Field(default="Monad Stacker X", alias="GAME_NAME")
    game_image: str = Field(
        default="https://i.ibb.co/8N1dVJz/stacker-icon.png",
        alias="GAME_IMAGE",
    )
    game_url: str = Field(default="http://localhost:5173", alias="GAME_URL")

    # CORS configuration for the browser client
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://127.0.0.1:5173"],
        alias="CORS_ORIGINS",
    )
    cors_origin_regex: str | None = Field(default=None, alias="CORS_ORIGIN_REGEX")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def chain_configured(self) -> bool:
        """Return True when every value needed for on-chain writes is present."""
        return bool(self.rpc_url and self.contract_addr and self.server_private_key)

    @property
    def session_ttl_ms(self) -> int:
        """Return the session lifetime in milliseconds (0 means no expiry)."""
        return self.session_ttl_seconds * 1000


settings = Settings()  # type: ignore[call-arg]
