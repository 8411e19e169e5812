"""Fixed-window rate limiting for auth and capture endpoints.

The store is built once by the app factory and reached through
``get_rate_limit_store``; routes declare throttles with ``RateLimit``.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Request

from devstack.exceptions import RateLimitError
from devstack.metrics import record_rate_limited
from devstack.services.fingerprint import client_ip

logger = structlog.get_logger(__name__)

MINUTE_MS = 60 * 1000

# Above this many keys, expired windows are swept on the next check
_SWEEP_THRESHOLD = 10_000


@dataclass
class _Window:
    count: int
    started_at: float


class RateLimitStore(ABC):
    """Counter store behind the rate limiter."""

    @abstractmethod
    async def check(self, key: str, max_attempts: int, window_ms: int) -> bool:
        """Count one attempt for ``key`` and return whether it is allowed."""

    async def close(self) -> None:
        """Release any connections held by the store."""


class InMemoryRateLimitStore(RateLimitStore):
    """Per-process store.

    ``check`` never awaits, so each update runs without interleaving on
    the event loop. State is not shared across instances.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._windows: dict[str, _Window] = {}

    async def check(self, key: str, max_attempts: int, window_ms: int) -> bool:
        return self.hit(key, max_attempts, window_ms)

    def hit(self, key: str, max_attempts: int, window_ms: int) -> bool:
        now_ms = self._clock() * 1000
        if len(self._windows) > _SWEEP_THRESHOLD:
            self._sweep(now_ms, window_ms)

        window = self._windows.get(key)
        if window is None or now_ms - window.started_at >= window_ms:
            self._windows[key] = _Window(count=1, started_at=now_ms)
            return True

        window.count += 1
        return window.count <= max_attempts

    def reset(self) -> None:
        self._windows.clear()

    def _sweep(self, now_ms: float, window_ms: int) -> None:
        stale = [k for k, w in self._windows.items() if now_ms - w.started_at >= window_ms]
        for k in stale:
            del self._windows[k]


class RedisRateLimitStore(RateLimitStore):
    """Shared store, one key per window.

    The key is created with its expiry (`SET NX PX`) and counted (`INCR`) in one
    MULTI block; every counter key carries a TTL.

    Falls back to an in-memory store while Redis is unreachable.
    """

    def __init__(self, redis: Any, prefix: str = "devstack:ratelimit") -> None:
        self._redis = redis
        self._prefix = prefix
        self._fallback = InMemoryRateLimitStore()

    @classmethod
    def from_url(cls, url: str) -> RedisRateLimitStore:
        import redis.asyncio as aioredis

        return cls(aioredis.from_url(url, decode_responses=True))

    async def check(self, key: str, max_attempts: int, window_ms: int) -> bool:
        redis_key = f"{self._prefix}:{key}"
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.set(redis_key, 0, px=window_ms, nx=True)
                pipe.incr(redis_key)
                _, count = await pipe.execute()
            return int(count) <= max_attempts
        except Exception as e:
            logger.warning("rate_limit_redis_failed_using_fallback", key=key, error=str(e))
            return self._fallback.hit(key, max_attempts, window_ms)

    async def close(self) -> None:
        await self._redis.aclose()


def build_rate_limit_store(backend: str, redis_url: str | None) -> RateLimitStore:
    """Construct the configured store."""
    if backend == "redis" and redis_url:
        return RedisRateLimitStore.from_url(redis_url)
    if backend == "redis":
        logger.warning("rate_limit_redis_url_missing_using_memory")
    return InMemoryRateLimitStore()


def get_rate_limit_store(request: Request) -> RateLimitStore:
    """Dependency returning the store attached to the application."""
    store: RateLimitStore | None = getattr(request.app.state, "rate_limit_store", None)
    if store is None:
        store = InMemoryRateLimitStore()
        request.app.state.rate_limit_store = store
    return store


class RateLimit:
    """Route dependency enforcing ``max_attempts`` per ``window_ms`` per client IP.

    Usage::

        @router.post("/forgot-password", dependencies=[Depends(RateLimit("password-reset", 3))])
    """

    def __init__(self, action: str, max_attempts: int, window_ms: int = 15 * MINUTE_MS) -> None:
        self.action = action
        self.max_attempts = max_attempts
        self.window_ms = window_ms

    async def __call__(self, request: Request) -> None:
        from devstack.config import get_settings

        if not get_settings().rate_limit_enabled:
            return

        store = get_rate_limit_store(request)
        key = f"{self.action}:{client_ip(request)}"
        if not await store.check(key, self.max_attempts, self.window_ms):
            record_rate_limited(self.action)
            logger.warning("rate_limit_exceeded", action=self.action, path=request.url.path)
            raise RateLimitError()
