"""
============================================================================
FILE: test_limiter.py
LOCATION: tests/test_limiter.py
============================================================================

PURPOSE:
    Tests for the per-client, per-endpoint-group rate limiter.

ROLE IN PROJECT:
    Pins the counting rules clients depend on: remaining budget, the first
    limited request, independent counters, window expiry and renewal, and
    the 429 response produced by the FastAPI dependency.

KEY COMPONENTS:
    - TestCheckLimit: RateLimiter.check_limit counting behavior
    - TestStores: Memory and Redis counter stores, expired-counter sweep
    - TestClientIdentifier: Token / forwarded address identification
    - TestRateLimitDependency: Headers and 429, direct and on real endpoints

DEPENDENCIES:
    - External: pytest, redis, fastapi
    - Internal: api.limiter, api.main

USAGE:
    Run with: pytest tests/test_limiter.py -v
============================================================================
"""

import hashlib
from unittest.mock import MagicMock

import pytest
import redis
from starlette.requests import Request
from starlette.responses import Response

from api.errors import RateLimitExceededError
from api.limiter import (
    MemoryCounterStore,
    RateLimiter,
    RedisCounterStore,
    client_identifier,
    rate_limit,
    set_rate_limiter,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


RULES = {
    "default": {"limit": 3, "window_seconds": 60},
    "find": {"limit": 2, "window_seconds": 30},
}


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(MemoryCounterStore(clock=clock), rules=RULES, wall_clock=lambda: 1000.4)


def _request(headers=None, client=("203.0.113.7", 5555)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestCheckLimit:
    def test_remaining_counts_down_to_zero(self, limiter) -> None:
        for n in range(1, 6):
            result = limiter.check_limit("client-a")
            assert result.remaining == max(0, 3 - n)

    def test_request_after_limit_is_limited(self, limiter) -> None:
        results = [limiter.check_limit("client-a") for _ in range(4)]

        assert [r.is_limited for r in results] == [False, False, False, True]

    def test_other_client_has_independent_counter(self, limiter) -> None:
        for _ in range(4):
            limiter.check_limit("client-a")

        result = limiter.check_limit("client-b")

        assert result.is_limited is False
        assert result.remaining == 2

    def test_endpoint_groups_count_separately(self, limiter) -> None:
        for _ in range(3):
            limiter.check_limit("client-a", "find")

        result = limiter.check_limit("client-a", "default")

        assert result.is_limited is False
        assert result.remaining == 2

    def test_counter_resets_after_window(self, limiter, clock) -> None:
        for _ in range(4):
            limiter.check_limit("client-a")

        clock.now += 61
        result = limiter.check_limit("client-a")

        assert result.is_limited is False
        assert result.remaining == 2

    def test_each_request_renews_the_window(self, limiter, clock) -> None:
        limiter.check_limit("client-a")
        clock.now += 50
        limiter.check_limit("client-a")
        clock.now += 50
        result = limiter.check_limit("client-a")

        # 100s after the first call, but never 60s idle
        assert result.remaining == 0

    def test_unknown_group_uses_default_rule(self, limiter) -> None:
        result = limiter.check_limit("client-a", "no-such-group")

        assert result.headers["X-RateLimit-Limit"] == "3"

    def test_headers(self, limiter) -> None:
        result = limiter.check_limit("client-a", "find")

        assert result.headers == {
            "X-RateLimit-Limit": "2",
            "X-RateLimit-Remaining": "1",
            "X-RateLimit-Reset": "1030",
        }

    def test_store_failure_counts_as_first_request(self) -> None:
        store = MagicMock()
        store.incr_with_expiry.side_effect = redis.ConnectionError("down")
        limiter = RateLimiter(store, rules=RULES)

        result = limiter.check_limit("client-a")

        assert result.is_limited is False
        assert result.remaining == 2

    def test_rules_need_default(self) -> None:
        with pytest.raises(ValueError):
            RateLimiter(MemoryCounterStore(), rules={"find": {"limit": 1, "window_seconds": 1}})

    def test_default_configuration(self) -> None:
        limiter = RateLimiter(MemoryCounterStore())

        assert limiter.rule_for("default").limit == 100
        assert limiter.rule_for("default").window_seconds == 900
        assert limiter.rule_for("find").limit == 30
        assert limiter.rule_for("find").window_seconds == 300
        assert limiter.rule_for("register").limit == 10
        assert limiter.rule_for("register").window_seconds == 3600


class TestStores:
    def test_memory_store_clear(self, clock) -> None:
        store = MemoryCounterStore(clock=clock)
        store.incr_with_expiry("k", 10)
        store.incr_with_expiry("k", 10)

        store.clear()

        assert store.incr_with_expiry("k", 10) == 1

    def test_memory_store_sweeps_expired_counters(self, clock) -> None:
        store = MemoryCounterStore(clock=clock)
        limiter = RateLimiter(store, rules=RULES)
        for n in range(1000):
            limiter.check_limit(f"198.51.100.{n}", "find")
        assert store.size() == 1000

        clock.now += 10 * 3600
        limiter.check_limit("203.0.113.7", "find")

        assert store.size() == 1

    def test_memory_store_keeps_live_counters_on_sweep(self, clock) -> None:
        store = MemoryCounterStore(clock=clock, sweep_interval=10)
        store.incr_with_expiry("old", 5)
        store.incr_with_expiry("live", 60)

        clock.now += 20
        assert store.incr_with_expiry("live", 60) == 2

        assert store.size() == 1

    def test_memory_store_sweep_waits_for_interval(self, clock) -> None:
        store = MemoryCounterStore(clock=clock, sweep_interval=120)
        store.incr_with_expiry("a", 5)

        clock.now += 60
        store.incr_with_expiry("b", 5)

        # "a" has expired but no sweep is due yet
        assert store.size() == 2

    def test_redis_store_prefixes_keys(self) -> None:
        client = MagicMock()
        client.incr_with_expiry.return_value = 4
        store = RedisCounterStore(client=client)

        assert store.incr_with_expiry("find:1.2.3.4", 300) == 4
        client.incr_with_expiry.assert_called_once_with("ratelimit:find:1.2.3.4", 300)


class TestClientIdentifier:
    def test_bearer_token_is_hashed(self) -> None:
        identifier = client_identifier(_request({"Authorization": "Bearer secret-token"}))

        digest = hashlib.sha256(b"secret-token").hexdigest()[:32]
        assert identifier == f"token:{digest}"
        assert "secret-token" not in identifier

    def test_forwarded_for_first_entry(self) -> None:
        request = _request({"X-Forwarded-For": "198.51.100.1, 10.0.0.1"})

        assert client_identifier(request) == "198.51.100.1"

    def test_real_ip(self) -> None:
        assert client_identifier(_request({"X-Real-IP": "198.51.100.9"})) == "198.51.100.9"

    def test_peer_address_fallback(self) -> None:
        assert client_identifier(_request()) == "203.0.113.7"


class TestRateLimitDependency:
    @pytest.mark.asyncio
    async def test_dependency_records_headers(self, limiter) -> None:
        set_rate_limiter(limiter)
        request, response = _request(), Response()

        result = await rate_limit("find")(request, response)

        assert result.remaining == 1
        assert response.headers["X-RateLimit-Remaining"] == "1"
        assert request.state.rate_limit_headers == result.headers

    @pytest.mark.asyncio
    async def test_dependency_raises_when_limited(self, limiter) -> None:
        set_rate_limiter(limiter)
        dependency = rate_limit("find")
        for _ in range(2):
            await dependency(_request(), Response())

        with pytest.raises(RateLimitExceededError) as exc_info:
            await dependency(_request(), Response())

        assert exc_info.value.headers["Retry-After"] == "60"
        assert exc_info.value.headers["X-RateLimit-Remaining"] == "0"

    def test_success_carries_headers(self, client) -> None:
        response = client.post(
            "/api/peddlers/findNearby",
            json={"location": {"lat": -6.38, "lon": 106.82}},
        )

        assert response.status_code == 200
        assert response.headers["X-RateLimit-Limit"] == "30"
        assert response.headers["X-RateLimit-Remaining"] == "29"
        assert "X-RateLimit-Reset" in response.headers

    def test_error_response_keeps_headers(self, client) -> None:
        response = client.post("/api/peddlers/findNearby", json={})

        assert response.status_code == 400
        assert response.headers["X-RateLimit-Remaining"] == "29"

    def test_limit_exceeded_returns_429(self, client) -> None:
        set_rate_limiter(RateLimiter(MemoryCounterStore(), rules=RULES))
        body = {"location": {"lat": -6.38, "lon": 106.82}}

        statuses = [client.post("/api/peddlers/findNearby", json=body).status_code for _ in range(2)]
        response = client.post("/api/peddlers/findNearby", json=body)

        assert statuses == [200, 200]
        assert response.status_code == 429
        assert response.json() == {"error": "Rate limit exceeded. Please try again later."}
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_vendor_and_peddler_search_share_budget(self, client) -> None:
        set_rate_limiter(RateLimiter(MemoryCounterStore(), rules=RULES))
        body = {"location": {"lat": -6.38, "lon": 106.82}}

        client.post("/api/peddlers/findNearby", json=body)
        client.post("/api/vendors/findNearby", json=body)
        response = client.post("/api/vendors/findNearby", json=body)

        assert response.status_code == 429
