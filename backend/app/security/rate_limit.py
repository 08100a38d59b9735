"""Fixed-window request rate limiting for the public booking endpoints.

With ``REDIS_URL`` configured the counters live in Redis and are shared by
every instance. Without it each process keeps its own counters, so the
effective limit scales with the number of instances; that limiter is a
courtesy throttle only. Neither is involved in reservation correctness.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

import redis

from app import config


logger = logging.getLogger("slotbook.security.rate_limit")


class InMemoryRateLimiter:
    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._next_prune = 0.0
        self._lock = threading.Lock()

    def _prune(self, now: float) -> None:
        # At most once per window; drops every key whose window has closed.
        if now < self._next_prune:
            return
        self._windows = {
            key: window for key, window in self._windows.items() if window[0] > now
        }
        self._next_prune = now + self.window_seconds

    def allow(self, key: str) -> bool:
        now = self.clock()
        with self._lock:
            self._prune(now)
            reset_at, count = self._windows.get(key, (0.0, 0))
            if now >= reset_at:
                self._windows[key] = (now + self.window_seconds, 1)
                return True
            if count >= self.max_requests:
                return False
            self._windows[key] = (reset_at, count + 1)
            return True


class RedisRateLimiter:
    def __init__(
        self,
        client: redis.Redis,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock

    def allow(self, key: str) -> bool:
        window = int(self.clock() // self.window_seconds)
        redis_key = f"ratelimit:{key}:{window}"
        try:
            pipe = self.client.pipeline()
            pipe.incr(redis_key)
            pipe.expire(redis_key, self.window_seconds)
            count, _ = pipe.execute()
        except redis.RedisError:
            logger.warning("Rate limit store unavailable; allowing request for key=%s", key)
            return True
        return int(count) <= self.max_requests


_rate_limiter: InMemoryRateLimiter | RedisRateLimiter | None = None


def build_rate_limiter() -> InMemoryRateLimiter | RedisRateLimiter:
    if config.REDIS_URL:
        return RedisRateLimiter(
            client=redis.Redis.from_url(config.REDIS_URL, decode_responses=True),
            max_requests=config.RATE_LIMIT_MAX_REQUESTS,
            window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        )
    logger.warning("REDIS_URL not set; using per-instance in-memory rate limiting.")
    return InMemoryRateLimiter(
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
    )


def get_rate_limiter() -> InMemoryRateLimiter | RedisRateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = build_rate_limiter()
    return _rate_limiter


def reset_rate_limiter() -> None:
    global _rate_limiter
    _rate_limiter = None
