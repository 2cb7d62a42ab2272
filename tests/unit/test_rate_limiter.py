"""Unit tests for rate limiting."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import Request

from portal_handoff.core.cache import Cache, CacheUnavailableError
from portal_handoff.core.rate_limiter import (
    InMemoryRateLimitBackend,
    RateLimitConfig,
    RateLimiter,
    RateLimitRule,
    RedisRateLimitBackend,
    client_key_from_request,
)

RULE = RateLimitRule(name="token_issue", window_seconds=60, max_requests=3)


def make_request(
    headers: dict[str, str] | None = None, client: tuple[str, int] | None = ("9.9.9.9", 1234)
) -> Request:
    """Build a bare ASGI request."""
    scope: dict[str, Any] = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "headers": [
            (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
        ],
        "client": client,
    }
    return Request(scope)


class TestRateLimitConfig:
    """Per-endpoint rules."""

    def test_endpoint_limits(self) -> None:
        config = RateLimitConfig()
        assert (config.token_issue.window_seconds, config.token_issue.max_requests) == (60, 3)
        assert config.state_create.max_requests == 10
        assert config.state_exchange.max_requests == 10
        assert config.token_validate.max_requests == 10
        assert config.deployments_list.max_requests == 30

    def test_lookup_by_name(self) -> None:
        assert RateLimitConfig().rule("state_exchange").name == "state_exchange"

    def test_unknown_rule(self) -> None:
        with pytest.raises(KeyError):
            RateLimitConfig().rule("nope")


class TestInMemoryLimiter:
    """Sliding window in process memory."""

    @pytest.mark.asyncio
    async def test_fourth_call_in_window_is_limited(self) -> None:
        limiter = RateLimiter(InMemoryRateLimitBackend())

        assert await limiter.allow("1.2.3.4", RULE, now=0)
        assert await limiter.allow("1.2.3.4", RULE, now=10)
        assert await limiter.allow("1.2.3.4", RULE, now=20)
        assert not await limiter.allow("1.2.3.4", RULE, now=30)

        assert await limiter.allow("1.2.3.4", RULE, now=81)

    @pytest.mark.asyncio
    async def test_window_slides(self) -> None:
        limiter = RateLimiter(InMemoryRateLimitBackend())
        for t in (0, 30, 59):
            assert await limiter.allow("k", RULE, now=t)

        assert not await limiter.allow("k", RULE, now=60 - 0.5)
        assert await limiter.allow("k", RULE, now=60)
        assert not await limiter.allow("k", RULE, now=61)

    @pytest.mark.asyncio
    async def test_clients_and_endpoints_are_independent(self) -> None:
        limiter = RateLimiter(InMemoryRateLimitBackend())
        other_rule = RateLimitRule(name="state_create", window_seconds=60, max_requests=3)
        for t in range(3):
            await limiter.allow("a", RULE, now=t)

        assert not await limiter.allow("a", RULE, now=5)
        assert await limiter.allow("b", RULE, now=5)
        assert await limiter.allow("a", other_rule, now=5)

    @pytest.mark.asyncio
    async def test_disabled_limiter_allows_everything(self) -> None:
        limiter = RateLimiter(InMemoryRateLimitBackend(), enabled=False)
        for t in range(10):
            assert await limiter.allow("k", RULE, now=t)

    @pytest.mark.asyncio
    async def test_cleanup_drops_idle_clients(self) -> None:
        backend = InMemoryRateLimitBackend()
        await backend.hit("idle", RULE, now=0)
        await backend.hit("busy", RULE, now=5000)

        dropped = await backend.cleanup_inactive_clients(now=5000, inactive_threshold_seconds=3600)

        assert dropped == 1
        assert list(backend.clients) == ["busy"]


class TestRedisLimiter:
    """Sorted-set window shared across instances."""

    @pytest.mark.asyncio
    async def test_fourth_call_in_window_is_limited(self, cache: Cache) -> None:
        limiter = RateLimiter(RedisRateLimitBackend(cache))

        assert await limiter.allow("1.2.3.4", RULE, now=1000)
        assert await limiter.allow("1.2.3.4", RULE, now=1010)
        assert await limiter.allow("1.2.3.4", RULE, now=1020)
        assert not await limiter.allow("1.2.3.4", RULE, now=1030)

        assert await limiter.allow("1.2.3.4", RULE, now=1081)

    @pytest.mark.asyncio
    async def test_rejected_hits_do_not_consume_quota(
        self, cache: Cache, fake_redis: Any
    ) -> None:
        limiter = RateLimiter(RedisRateLimitBackend(cache))
        for t in range(6):
            await limiter.allow("k", RULE, now=1000 + t)

        assert await fake_redis.zcard("ratelimit:token_issue:k") == 3

    @pytest.mark.asyncio
    async def test_two_limiters_share_counts(self, cache: Cache) -> None:
        first = RateLimiter(RedisRateLimitBackend(cache))
        second = RateLimiter(RedisRateLimitBackend(cache))

        assert await first.allow("k", RULE, now=1000)
        assert await second.allow("k", RULE, now=1001)
        assert await first.allow("k", RULE, now=1002)
        assert not await second.allow("k", RULE, now=1003)

    @pytest.mark.asyncio
    async def test_unavailable_redis_propagates(self) -> None:
        cache = MagicMock()
        cache.sliding_window_hit = AsyncMock(side_effect=CacheUnavailableError("down"))
        limiter = RateLimiter(RedisRateLimitBackend(cache))

        with pytest.raises(CacheUnavailableError):
            await limiter.allow("k", RULE, now=0)


class TestClientKey:
    """Client address derivation."""

    def test_first_forwarded_for_entry(self) -> None:
        request = make_request({"X-Forwarded-For": "1.2.3.4, 10.0.0.1"})
        assert client_key_from_request(request) == "1.2.3.4"

    def test_real_ip_fallback(self) -> None:
        request = make_request({"X-Real-IP": "5.6.7.8"})
        assert client_key_from_request(request) == "5.6.7.8"

    def test_socket_peer_fallback(self) -> None:
        assert client_key_from_request(make_request()) == "9.9.9.9"

    def test_unknown_when_nothing_available(self) -> None:
        assert client_key_from_request(make_request(client=None)) == "unknown"
