# call_scheduler/services/rate_limiter.py
"""
Fixed-window rate limiting backed by Redis.

Each (endpoint_class, client) pair owns a hash
    rl:{endpoint_class}:{sha256(client)} → {count, reset}
and the read / reset / increment / write cycle runs under a short-lived
redis-py Lock (SET NX PX to take it, a token-compare script to release
it), so concurrent requests never lose an increment.

If the lock can't be acquired within the retry budget, or Redis is down,
the request is allowed through uncounted (fail open): contention degrades
precision instead of blocking legitimate traffic.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from redis import Redis, RedisError
from redis.exceptions import LockNotOwnedError
from redis.lock import Lock

from ..utils.hashing import hash_value, short_hash

logger = logging.getLogger(__name__)

KEY_PREFIX = "rl"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset: int  # unix timestamp when the window ends
    retry_after: Optional[int] = None
    counted: bool = True

    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.reset),
        }
        if self.retry_after is not None:
            headers["Retry-After"] = str(self.retry_after)
        return headers


class RateLimiter:
    def __init__(
        self,
        redis: Redis,
        limit: int,
        window: int = 60,
        max_retries: int = 3,
        retry_delay: float = 0.01,
        lock_ttl_ms: int = 1000,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.redis = redis
        self.limit = max(1, int(limit))
        self.window = max(1, int(window))
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.lock_ttl_ms = lock_ttl_ms
        self.clock = clock
        self.sleep = sleep

    def check(self, endpoint_class: str, client_identity: str) -> RateLimitResult:
        """
        Count one request and decide whether it's allowed.

        Returns a result with limit/remaining/reset metadata; when limited,
        retry_after holds the seconds until the window resets.
        """
        key = self._key(endpoint_class, client_identity)
        lock = self.redis.lock(f"{key}:lock", timeout=self.lock_ttl_ms / 1000, blocking=False)

        try:
            for _ in range(self.max_retries):
                if not lock.acquire(blocking=False):
                    # Lock held by another request, wait briefly and retry
                    self.sleep(self.retry_delay)
                    continue

                try:
                    return self._count(key)
                finally:
                    self._release(lock)
        except RedisError as e:
            logger.error(f"Rate limit check failed for {endpoint_class}: {e}")
            return self._fail_open()

        logger.warning(
            f"Rate limiter: lock not acquired after {self.max_retries} retries "
            f"({endpoint_class}, client={short_hash(client_identity)}), allowing request"
        )
        return self._fail_open()

    def peek(self, endpoint_class: str, client_identity: str) -> RateLimitResult:
        """Current window metadata without counting a request."""
        key = self._key(endpoint_class, client_identity)
        now = int(self.clock())
        try:
            data = self.redis.hgetall(key)
        except RedisError:
            return self._fail_open()

        count, reset = _parse(data)
        if count is None or now > reset:
            return RateLimitResult(True, self.limit, self.limit, now + self.window)
        return RateLimitResult(
            allowed=count < self.limit,
            limit=self.limit,
            remaining=max(0, self.limit - count),
            reset=reset,
        )

    # ── Internals ────────────────────────────────────────────────────────

    def _count(self, key: str) -> RateLimitResult:
        """Read, reset if expired, increment, write. Caller holds the lock."""
        now = int(self.clock())
        count, reset = _parse(self.redis.hgetall(key))

        if count is None or now > reset:
            count, reset = 0, now + self.window

        count += 1

        pipe = self.redis.pipeline()
        pipe.hset(key, mapping={"count": count, "reset": reset})
        pipe.expire(key, max(1, reset - now))
        pipe.execute()

        if count > self.limit:
            return RateLimitResult(
                allowed=False,
                limit=self.limit,
                remaining=0,
                reset=reset,
                retry_after=max(1, reset - now),
            )

        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=self.limit - count,
            reset=reset,
        )

    def _release(self, lock: Lock) -> None:
        # Compare-and-delete runs server side: a lock that expired and was
        # taken by another request is left alone
        try:
            lock.release()
        except LockNotOwnedError:
            logger.warning(f"Rate limit lock {lock.name} expired before release")
        except RedisError as e:
            logger.error(f"Failed to release rate limit lock: {e}")

    def _fail_open(self) -> RateLimitResult:
        return RateLimitResult(
            allowed=True,
            limit=self.limit,
            remaining=self.limit,
            reset=int(self.clock()) + self.window,
            counted=False,
        )

    def _key(self, endpoint_class: str, client_identity: str) -> str:
        return f"{KEY_PREFIX}:{endpoint_class}:{hash_value(client_identity)}"


def _parse(data: dict) -> tuple[Optional[int], int]:
    if not data or "count" not in data or "reset" not in data:
        return None, 0
    return int(data["count"]), int(data["reset"])
