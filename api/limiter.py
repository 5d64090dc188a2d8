"""
============================================================================
FILE: limiter.py
LOCATION: api/limiter.py
============================================================================

PURPOSE:
    Per-client, per-endpoint-group request limiting for the backend.

ROLE IN PROJECT:
    Routers declare `Depends(rate_limit("find"))` (or "register", "default")
    to bound request volume. Counters live in Redis so every API instance
    shares them; an in-process store is used when Redis is disabled.

KEY COMPONENTS:
    - RateLimiter.check_limit: Increment counter, report limit state
    - RateLimitResult: is_limited, remaining, headers
    - RedisCounterStore / MemoryCounterStore: Counter backends
    - client_identifier: Bearer token digest, else forwarded IP
    - rate_limit(endpoint): FastAPI dependency factory

BEHAVIOR:
    Each increment (re)sets the counter expiry to the group's window, so a
    client that keeps calling keeps its window open. The request that takes
    the count past `limit` is the first one reported as limited.

DEPENDENCIES:
    - External: redis, slowapi, fastapi
    - Internal: config.RATE_LIMITS, cache.redis_client, errors

USAGE:
    from api.limiter import rate_limit

    @router.post("/findNearby", dependencies=[Depends(rate_limit("find"))])
    async def find_nearby(...):
        ...
============================================================================
"""

import hashlib
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Tuple

import redis
from fastapi import Request, Response
from slowapi.util import get_remote_address

try:
    from cache import redis_client
    from config import RATE_LIMITS
    from errors import RateLimitExceededError
    from logging_config import get_logger
except ImportError:
    from api.cache import redis_client
    from api.config import RATE_LIMITS
    from api.errors import RateLimitExceededError
    from api.logging_config import get_logger


logger = get_logger("limiter")

RETRY_AFTER_SECONDS = "60"
SWEEP_INTERVAL_SECONDS = 120


@dataclass(frozen=True)
class RateLimitRule:
    limit: int
    window_seconds: int


@dataclass
class RateLimitResult:
    is_limited: bool
    remaining: int
    headers: Dict[str, str] = field(default_factory=dict)


class MemoryCounterStore:
    """Single-process counter store with per-key expiry.

    Expired entries are dropped by a sweep that runs at most once every
    `sweep_interval` seconds, on the next increment after it falls due.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = SWEEP_INTERVAL_SECONDS,
    ):
        self._clock = clock
        self._counters: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._sweep_interval = sweep_interval
        self._next_sweep = clock() + sweep_interval

    def size(self) -> int:
        with self._lock:
            return len(self._counters)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (_, expires_at) in self._counters.items() if expires_at <= now]
        for key in expired:
            del self._counters[key]
        self._next_sweep = now + self._sweep_interval
        if expired:
            logger.debug(f"Swept {len(expired)} expired rate limit counters")

    def incr_with_expiry(self, key: str, ttl: int) -> int:
        now = self._clock()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            count, expires_at = self._counters.get(key, (0, 0.0))
            if expires_at <= now:
                count = 0
            count += 1
            self._counters[key] = (count, now + ttl)
            return count

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()


class RedisCounterStore:
    """Counter store shared across API instances through Redis."""

    def __init__(self, client=redis_client, prefix: str = "ratelimit:"):
        self._client = client
        self._prefix = prefix

    def incr_with_expiry(self, key: str, ttl: int) -> int:
        return self._client.incr_with_expiry(self._prefix + key, ttl)


class RateLimiter:
    """Fixed-budget request counter with a renewing window."""

    def __init__(
        self,
        store,
        rules: Optional[Mapping[str, Mapping[str, int]]] = None,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self._wall_clock = wall_clock
        self.rules = {
            name: RateLimitRule(rule["limit"], rule["window_seconds"])
            for name, rule in (rules or RATE_LIMITS).items()
        }
        if "default" not in self.rules:
            raise ValueError("rate limit rules need a 'default' entry")

    def rule_for(self, endpoint: str) -> RateLimitRule:
        return self.rules.get(endpoint, self.rules["default"])

    def check_limit(self, client_id: str, endpoint: str = "default") -> RateLimitResult:
        """Count one request from client_id against endpoint's budget.

        Never raises: a store failure is logged and the request is counted
        as the first of a fresh window.
        """
        rule = self.rule_for(endpoint)
        key = f"{endpoint}:{client_id}"

        try:
            count = self.store.incr_with_expiry(key, rule.window_seconds)
        except redis.RedisError as exc:
            logger.warning(f"Rate limit store unavailable for {endpoint}: {exc}")
            count = 1

        remaining = max(0, rule.limit - count)
        reset_at = math.floor(self._wall_clock() + rule.window_seconds)
        headers = {
            "X-RateLimit-Limit": str(rule.limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_at),
        }
        return RateLimitResult(
            is_limited=count > rule.limit,
            remaining=remaining,
            headers=headers,
        )


def client_identifier(request: Request) -> str:
    """Identify the caller: bearer token first, then forwarded address."""
    authorization = request.headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            digest = hashlib.sha256(token.encode("utf-8")).hexdigest()[:32]
            return f"token:{digest}"

    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request) or "unknown"


_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide limiter, backed by Redis when reachable."""
    global _limiter
    if _limiter is None:
        if redis_client.is_available():
            store = RedisCounterStore()
            logger.info("Rate limiter using shared Redis counters")
        else:
            store = MemoryCounterStore()
            logger.warning("Rate limiter using in-process counters")
        _limiter = RateLimiter(store)
    return _limiter


def set_rate_limiter(limiter: Optional[RateLimiter]) -> None:
    """Replace the process-wide limiter (None rebuilds it lazily)."""
    global _limiter
    _limiter = limiter


def rate_limit(endpoint: str = "default"):
    """Build a FastAPI dependency enforcing the endpoint group's budget."""

    async def dependency(request: Request, response: Response) -> RateLimitResult:
        result = get_rate_limiter().check_limit(client_identifier(request), endpoint)
        request.state.rate_limit_headers = result.headers
        response.headers.update(result.headers)
        if result.is_limited:
            logger.info(f"Rate limit exceeded for group {endpoint}")
            raise RateLimitExceededError(
                headers={**result.headers, "Retry-After": RETRY_AFTER_SECONDS},
            )
        return result

    return dependency
