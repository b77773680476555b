"""Single-use enforcement for session tokens.

Session tokens are self-contained and carry no server-side state, so on
their own they can be submitted more than once while still valid. When
``SESSION_SINGLE_USE`` is on, the submission workflow claims the session id
here before touching the chain; only the first claim succeeds.
"""

from __future__ import annotations

import logging
import time
from threading import Lock
from typing import Any, Final

import redis

from stacker_server.core.settings import settings

logger = logging.getLogger(__name__)

_KEY_PREFIX: Final[str] = "session:used:"
_DEFAULT_TTL_SECONDS: Final[int] = 86_400
_REDIS_RETRY_SECONDS: Final[float] = 30.0


class SessionReplayGuard:
    """Remember which session ids have already been submitted."""

    def __init__(self, client: Any | None = None, *, retry_seconds: float = _REDIS_RETRY_SECONDS) -> None:
        self._redis = client
        self._retry_seconds = retry_seconds
        self._redis_retry_at = 0.0
        self._seen: dict[str, float] = {}
        self._lock = Lock()

    def claim(self, session_id: str, ttl_seconds: int) -> bool:
        """Mark ``session_id`` used; return False if it was already claimed.

        Backed by ``SET NX EX`` when Redis is available, otherwise by an
        in-process expiring set. After a Redis error the local set is used
        until ``retry_seconds`` have passed, then Redis is tried again.
        """
        ttl = ttl_seconds if ttl_seconds > 0 else _DEFAULT_TTL_SECONDS
        now = time.monotonic()
        with self._lock:
            self._purge(now)
            # Claims taken locally during an outage still count once Redis is back.
            if session_id in self._seen:
                return False
            use_redis = self._redis is not None and now >= self._redis_retry_at

        if use_redis:
            try:
                return bool(self._redis.set(f"{_KEY_PREFIX}{session_id}", "1", nx=True, ex=ttl))
            except redis.RedisError as exc:
                logger.warning(
                    "Redis unavailable for session replay guard, using local cache for %ss: %s",
                    self._retry_seconds,
                    exc,
                )
                self._redis_retry_at = now + self._retry_seconds

        with self._lock:
            if session_id in self._seen:
                return False
            self._seen[session_id] = now + ttl
            return True

    def _purge(self, now: float) -> None:
        expired = [key for key, expiry in self._seen.items() if expiry <= now]
        for key in expired:
            del self._seen[key]


def build_replay_guard() -> SessionReplayGuard:
    """Return a replay guard backed by Redis when ``REDIS_URL`` is set."""
    client = redis.from_url(settings.redis_url) if settings.redis_url else None
    return SessionReplayGuard(client)
