"""Play session issuance and validation.

Sessions are stateless: everything the server needs to check a submission
travels inside the signed token.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from stacker_server.core.errors import (
    InvalidSessionError,
    SessionExpiredError,
    SessionTooShortError,
)
from stacker_server.core.security import TokenCodec
from stacker_server.core.settings import settings
from stacker_server.db.time import epoch_ms
from stacker_server.utils.wallet import is_wallet, normalize_wallet


@dataclass(frozen=True)
class SessionClaims:
    """Contents of a session token."""

    session_id: str
    player: str
    start_ts: int
    min_duration_ms: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "player": self.player,
            "startTs": self.start_ts,
            "minMs": self.min_duration_ms,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> SessionClaims | None:
        """Build claims from a verified payload, or None if fields are missing."""
        session_id = payload.get("sessionId")
        player = payload.get("player")
        start_ts = payload.get("startTs")
        min_ms = payload.get("minMs")
        if not isinstance(session_id, str) or not isinstance(player, str):
            return None
        if type(start_ts) is not int or type(min_ms) is not int:
            return None
        return cls(session_id=session_id, player=player, start_ts=start_ts, min_duration_ms=min_ms)


@dataclass(frozen=True)
class IssuedSession:
    """Session identifier and bearer token handed to the client."""

    session_id: str
    token: str


class SessionManager:
    """Issue signed play sessions and check submissions against them."""

    def __init__(
        self,
        codec: TokenCodec,
        *,
        min_duration_ms: int,
        ttl_ms: int = 0,
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self._codec = codec
        self.min_duration_ms = min_duration_ms
        self.ttl_ms = ttl_ms
        self._clock = clock

    def now(self) -> int:
        return self._clock()

    def start_session(self, player: str) -> IssuedSession:
        """Mint a session for ``player``.

        Raises:
            ValueError: If ``player`` is not a wallet address.
        """
        claims = SessionClaims(
            session_id=str(uuid.uuid4()),
            player=normalize_wallet(player),
            start_ts=self.now(),
            min_duration_ms=self.min_duration_ms,
        )
        return IssuedSession(session_id=claims.session_id, token=self._codec.sign(claims.to_payload()))

    def validate_submission(
        self,
        token: str,
        claimed_session_id: str,
        claimed_player: str,
    ) -> SessionClaims:
        """Return the claims of ``token`` if it authorizes this submission.

        The token must verify, name the same session and player as the
        request, be younger than the session lifetime and older than its
        minimum duration.
        """
        payload = self._codec.verify(token)
        claims = SessionClaims.from_payload(payload) if payload is not None else None
        if claims is None:
            raise InvalidSessionError()
        if claims.session_id != claimed_session_id:
            raise InvalidSessionError()
        if not is_wallet(claimed_player) or normalize_wallet(claimed_player) != claims.player.lower():
            raise InvalidSessionError()

        elapsed = self.now() - claims.start_ts
        if self.ttl_ms and elapsed > self.ttl_ms:
            raise SessionExpiredError()
        if elapsed < claims.min_duration_ms:
            raise SessionTooShortError()
        return claims

    def elapsed_ms(self, claims: SessionClaims) -> int:
        return max(0, self.now() - claims.start_ts)


def build_session_manager() -> SessionManager:
    """Construct a session manager from global settings."""
    return SessionManager(
        TokenCodec(settings.session_secret),
        min_duration_ms=settings.session_min_duration_ms,
        ttl_ms=settings.session_ttl_ms,
    )
