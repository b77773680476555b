"""Best-effort display name lookup for wallets.

The identity service is optional: a slow, failing or silent lookup yields
``None`` and never an exception, so leaderboard responses do not depend on it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

import httpx

from stacker_server.core.settings import settings

logger = logging.getLogger(__name__)


class NameResolver(Protocol):
    """Resolve a wallet address to a display name."""

    async def resolve(self, wallet: str) -> str | None: ...

    async def close(self) -> None: ...


class NullNameResolver:
    """Resolver used when name lookups are disabled."""

    async def resolve(self, wallet: str) -> str | None:
        return None

    async def close(self) -> None:
        return None


class HttpNameResolver:
    """Resolve names via ``GET <url>?wallet=<address>``.

    Expected answer: ``{"hasUsername": true, "user": {"username": "..."}}``.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float,
        cache_seconds: int = 0,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._url = url
        self._timeout = timeout_seconds
        self._cache_seconds = cache_seconds
        self._client = client
        self._clock = clock
        self._client_lock = asyncio.Lock()
        self._cache: dict[str, tuple[float, str | None]] = {}

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    async def resolve(self, wallet: str) -> str | None:
        now = self._clock()
        cached = self._cache.get(wallet)
        if cached is not None and cached[0] > now:
            return cached[1]

        name = await self._fetch(wallet)
        if self._cache_seconds:
            self._purge(now)
            self._cache[wallet] = (now + self._cache_seconds, name)
        return name

    def _purge(self, now: float) -> None:
        expired = [key for key, (expiry, _) in self._cache.items() if expiry <= now]
        for key in expired:
            del self._cache[key]

    async def _fetch(self, wallet: str) -> str | None:
        try:
            client = await self._ensure_client()
            response = await client.get(self._url, params={"wallet": wallet})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Name lookup failed for %s: %s", wallet, exc)
            return None

        if not isinstance(payload, dict) or not payload.get("hasUsername"):
            return None
        user = payload.get("user")
        username = user.get("username") if isinstance(user, dict) else None
        return username if isinstance(username, str) and username else None

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


def build_name_resolver() -> NameResolver:
    """Construct the resolver selected by ``IDENTITY_ENABLED``."""
    if not settings.identity_enabled:
        return NullNameResolver()
    return HttpNameResolver(
        settings.identity_url,
        timeout_seconds=settings.identity_timeout_seconds,
        cache_seconds=settings.identity_cache_seconds,
    )
