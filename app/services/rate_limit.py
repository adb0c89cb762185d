"""Per-client fixed-window rate limiting for import and post-creation calls."""

from __future__ import annotations

import logging
import threading
import time
from typing import Protocol

from redis import Redis
from redis.exceptions import RedisError

from app.core.config import Settings

logger = logging.getLogger(__name__)


def window_start(now: float, window_seconds: int) -> int:
    ts = int(now)
    return ts - (ts % window_seconds)


class WindowStore(Protocol):
    def consume(self, key: str, limit: int, window_seconds: int, now: float) -> bool: ...


class InMemoryWindowStore:
    """Process-local counters; expired windows are swept lazily."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, tuple[int, int]] = {}
        self._last_sweep: int | None = None

    def consume(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        current = window_start(now, window_seconds)
        with self._lock:
            self._sweep(current)
            started, count = self._counters.get(key, (current, 0))
            if started != current:
                started, count = current, 0
            if count >= limit:
                return False
            self._counters[key] = (started, count + 1)
            return True

    def _sweep(self, current: int) -> None:
        if self._last_sweep == current:
            return
        self._last_sweep = current
        stale = [key for key, (started, _) in self._counters.items() if started < current]
        for key in stale:
            del self._counters[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)


class RedisWindowStore:
    """Shared counters for multi-instance deployments. Fails open when Redis is down."""

    def __init__(self, client: Redis, prefix: str = "rl") -> None:
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisWindowStore":
        return cls(Redis.from_url(redis_url, decode_responses=True))

    def consume(self, key: str, limit: int, window_seconds: int, now: float) -> bool:
        current = window_start(now, window_seconds)
        redis_key = f"{self.prefix}:{key}:{current}"
        try:
            count = self.client.incr(redis_key)
            if count == 1:
                self.client.expire(redis_key, window_seconds - (int(now) - current))
        except RedisError as exc:
            logger.warning("rate limit fail-open for %s: %s", key, exc)
            return True
        return count <= limit


class RateLimiter:
    def __init__(self, store: WindowStore, limits: dict[str, int], window_seconds: int, clock=time.time) -> None:
        self.store = store
        self.limits = dict(limits)
        self.window_seconds = window_seconds
        self.clock = clock

    def try_consume(self, client_id: str, action: str) -> bool:
        limit = self.limits.get(action)
        if limit is None:
            raise ValueError(f"No rate limit configured for action {action!r}")
        allowed = self.store.consume(f"{action}:{client_id}", limit, self.window_seconds, self.clock())
        if not allowed:
            logger.info("Rate limit reached for %s on %s", client_id, action)
        return allowed


def build_rate_limiter(settings: Settings) -> RateLimiter:
    if settings.rate_limit_backend == "redis":
        store: WindowStore = RedisWindowStore.from_url(settings.redis_url)
    else:
        store = InMemoryWindowStore()
    return RateLimiter(store, settings.rate_limits, settings.rate_limit_window_seconds)
