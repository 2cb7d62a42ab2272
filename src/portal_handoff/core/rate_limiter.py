# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Per-endpoint sliding-window rate limiting keyed by client address."""

import asyncio
import time
import uuid
from collections import deque
from typing import Protocol, runtime_checkable

from attrs import define, field, frozen
from beartype import beartype
from fastapi import Request

from .cache import Cache, get_cache
from .config import get_settings
from .logging_utils import get_logger

logger = get_logger(__name__)


@frozen
class RateLimitRule:
    """Immutable rate limiting rule: at most ``max_requests`` per window."""

    name: str = field()
    window_seconds: int = field()
    max_requests: int = field()


@frozen
class RateLimitConfig:
    """Rate limiting rules for each protected endpoint."""

    # Strictest: every hit mints a credential
    token_issue: RateLimitRule = field(
        default=RateLimitRule(name="token_issue", window_seconds=60, max_requests=3)
    )
    state_create: RateLimitRule = field(
        default=RateLimitRule(name="state_create", window_seconds=60, max_requests=10)
    )
    state_exchange: RateLimitRule = field(
        default=RateLimitRule(
            name="state_exchange", window_seconds=60, max_requests=10
        )
    )
    token_validate: RateLimitRule = field(
        default=RateLimitRule(
            name="token_validate", window_seconds=60, max_requests=10
        )
    )
    # Most permissive: read-only listing
    deployments_list: RateLimitRule = field(
        default=RateLimitRule(
            name="deployments_list", window_seconds=60, max_requests=30
        )
    )

    @beartype
    def rule(self, name: str) -> RateLimitRule:
        """Look up a rule by endpoint name."""
        rule = getattr(self, name, None)
        if not isinstance(rule, RateLimitRule):
            raise KeyError(f"No rate limit rule named {name!r}")
        return rule


@runtime_checkable
class RateLimitBackend(Protocol):
    """Storage for sliding-window counters."""

    async def hit(self, key: str, rule: RateLimitRule, now: float | int) -> bool:
        """Record a request and report whether it fits in the window."""
        ...

    async def cleanup_inactive_clients(
        self, now: float | int, inactive_threshold_seconds: int = 3600
    ) -> int:
        """Drop counters idle for longer than the threshold."""
        ...


@define
class ClientRateTracker:
    """Request timestamps of one client on one endpoint."""

    key: str = field()
    requests: deque[float] = field(factory=deque)
    last_request_time: float = field(default=0.0)

    @beartype
    def cleanup_old_requests(self, cutoff: float | int) -> None:
        """Remove requests at or before ``cutoff``."""
        while self.requests and self.requests[0] <= cutoff:
            self.requests.popleft()


class InMemoryRateLimitBackend:
    """Process-local counters.

    Counts are lost on restart and not shared between workers, so this
    backend only suits single-process deployments and tests.
    """

    def __init__(self) -> None:
        self.clients: dict[str, ClientRateTracker] = {}
        self._lock = asyncio.Lock()

    @beartype
    async def hit(self, key: str, rule: RateLimitRule, now: float | int) -> bool:
        async with self._lock:
            tracker = self.clients.get(key)
            if tracker is None:
                tracker = self.clients[key] = ClientRateTracker(key=key)

            tracker.cleanup_old_requests(now - rule.window_seconds)
            tracker.last_request_time = now
            if len(tracker.requests) >= rule.max_requests:
                return False

            tracker.requests.append(now)
            return True

    @beartype
    async def cleanup_inactive_clients(
        self, now: float | int, inactive_threshold_seconds: int = 3600
    ) -> int:
        """Clean up inactive client trackers to prevent memory leaks."""
        cutoff_time = now - inactive_threshold_seconds
        async with self._lock:
            inactive_clients = [
                key
                for key, tracker in self.clients.items()
                if tracker.last_request_time < cutoff_time
            ]
            for key in inactive_clients:
                del self.clients[key]

        return len(inactive_clients)


class RedisRateLimitBackend:
    """Sorted-set sliding window shared by every instance."""

    KEY_PREFIX = "ratelimit:"

    def __init__(self, cache: Cache) -> None:
        self._cache = cache

    @beartype
    async def hit(self, key: str, rule: RateLimitRule, now: float | int) -> bool:
        count = await self._cache.sliding_window_hit(
            f"{self.KEY_PREFIX}{key}",
            uuid.uuid4().hex,
            now,
            rule.window_seconds,
            rule.max_requests,
        )
        return count <= rule.max_requests

    @beartype
    async def cleanup_inactive_clients(
        self, now: float | int, inactive_threshold_seconds: int = 3600
    ) -> int:
        # Keys carry their own TTL of one window.
        return 0


class RateLimiter:
    """Applies a :class:`RateLimitConfig` over a storage backend."""

    def __init__(
        self,
        backend: RateLimitBackend,
        config: RateLimitConfig | None = None,
        enabled: bool = True,
    ) -> None:
        self.backend = backend
        self.config = config or RateLimitConfig()
        self.enabled = enabled

    @beartype
    async def allow(
        self, client_key: str, rule: RateLimitRule, now: float | int | None = None
    ) -> bool:
        """Check and record one request from ``client_key`` under ``rule``."""
        if not self.enabled:
            return True

        current_time = time.time() if now is None else now
        allowed = await self.backend.hit(f"{rule.name}:{client_key}", rule, current_time)
        if not allowed:
            logger.warning(
                "Rate limit exceeded: endpoint=%s client=%s limit=%d/%ds",
                rule.name,
                client_key,
                rule.max_requests,
                rule.window_seconds,
            )
        return allowed

    @beartype
    async def cleanup_inactive_clients(
        self, inactive_threshold_seconds: int = 3600
    ) -> int:
        """Drop idle counters from the backend."""
        return await self.backend.cleanup_inactive_clients(
            time.time(), inactive_threshold_seconds
        )


@beartype
def client_key_from_request(request: Request) -> str:
    """Derive the client address used as the rate limit key.

    Forwarded headers are spoofable; this is a best-effort signal.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


# Global rate limiter instance
_global_rate_limiter: RateLimiter | None = None


@beartype
def get_rate_limiter() -> RateLimiter:
    """Get global rate limiter instance."""
    global _global_rate_limiter
    if _global_rate_limiter is None:
        settings = get_settings()
        backend: RateLimitBackend
        if settings.rate_limit_backend == "redis":
            backend = RedisRateLimitBackend(get_cache())
        else:
            backend = InMemoryRateLimitBackend()
        _global_rate_limiter = RateLimiter(
            backend, enabled=settings.rate_limit_enabled
        )
    return _global_rate_limiter


@beartype
def reset_rate_limiter() -> None:
    """Drop the global limiter (for testing)."""
    global _global_rate_limiter
    _global_rate_limiter = None
