# cache.py
# Redis client for the KeliLink API

# Provides a singleton Redis client wrapper with lazy connection and
# graceful fallback when Redis is unavailable. Backs the shared rate limit
# counters and the nearby and /api/find search result cache.

# @see: api/limiter.py - RedisCounterStore uses incr_with_expiry()
# @see: api/nearby.py, api/find.py - Cache search results for a few minutes
# @note: Set REDIS_URL to configure, REDIS_ENABLED=false to disable

from __future__ import annotations

import json
import logging
from typing import Any, Optional

import redis

try:
    from config import REDIS_ENABLED, REDIS_URL
except ImportError:
    from api.config import REDIS_ENABLED, REDIS_URL

logger = logging.getLogger("kelilink.cache")


# Default TTL for cached items (5 minutes)
DEFAULT_TTL_SECONDS = 5 * 60

# Prefix shared by every cached search page (nearby and /api/find)
SEARCH_CACHE_PREFIX = "search:"


class RedisClient:
    """
    Redis client wrapper with graceful degradation.

    Cache operations fall back to no-ops when Redis is disabled or
    unreachable. Values are JSON-serialized.

    Example:
        from api.cache import redis_client

        redis_client.set("nearby:abc", {"peddlers": []}, ttl=300)
        data = redis_client.get("nearby:abc")
    """

    def __init__(self, url: str = REDIS_URL, enabled: bool = REDIS_ENABLED):
        self._url = url
        self._enabled = enabled
        self._client: Optional[redis.Redis] = None
        self._available: Optional[bool] = None

    def _get_client(self) -> Optional[redis.Redis]:
        """Get or create Redis client connection."""
        if not self._enabled:
            return None
        if self._client is not None:
            return self._client

        try:
            client = redis.Redis.from_url(
                self._url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            client.ping()
            self._client = client
            self._available = True
            logger.info(f"Redis connected: {self._url}")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {e}, shared cache disabled")
            self._client = None
            self._available = False

        return self._client

    def ping(self) -> bool:
        """Check if Redis is available and responding."""
        client = self._get_client()
        if client is None:
            return False
        try:
            return bool(client.ping())
        except redis.RedisError:
            self._available = False
            return False

    def is_available(self) -> bool:
        """Check availability, connecting on first use."""
        if self._available is None:
            self.ping()
        return self._available or False

    def get(self, key: str) -> Optional[Any]:
        """
        Get a value from cache.

        Returns:
            Cached value (JSON-decoded) or None if not found/unavailable
        """
        client = self._get_client()
        if client is None:
            return None

        try:
            value = client.get(key)
            if value is None:
                return None
            return json.loads(value)
        except (redis.RedisError, ValueError) as e:
            logger.debug(f"Cache get failed for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL_SECONDS) -> bool:
        """
        Set a value in cache with a TTL in seconds.

        Returns:
            True if successful, False otherwise
        """
        client = self._get_client()
        if client is None:
            return False

        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except redis.RedisError as e:
            logger.debug(f"Cache set failed for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete all keys matching a pattern.

        Returns:
            Number of keys deleted
        """
        client = self._get_client()
        if client is None:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern))
            if keys:
                return client.delete(*keys)
            return 0
        except redis.RedisError as e:
            logger.debug(f"Cache delete pattern failed for {pattern}: {e}")
            return 0

    def incr_with_expiry(self, key: str, ttl: int) -> int:
        """
        Atomically increment a counter and (re)set its expiry.

        Raises:
            redis.RedisError: If Redis is unavailable or the call fails.
        """
        client = self._get_client()
        if client is None:
            raise redis.ConnectionError("Redis is not available")

        pipe = client.pipeline(transaction=True)
        pipe.incr(key)
        pipe.expire(key, ttl)
        count, _ = pipe.execute()
        return int(count)


# ============================================================================
# SINGLETON INSTANCE
# ============================================================================

redis_client = RedisClient()


def invalidate_search_cache() -> int:
    """Drop every cached search page. Returns the number of keys removed."""
    return redis_client.delete_pattern(SEARCH_CACHE_PREFIX + "*")
