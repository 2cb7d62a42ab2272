# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""FastAPI dependencies for sessions, rate limiting and services.

This module provides reusable dependencies that can be injected into
API endpoints for cross-cutting concerns.
"""

from collections.abc import Awaitable, Callable
from typing import Annotated, Literal

from beartype import beartype
from fastapi import Depends, Header, HTTPException, Request, status

from ..core.cache import CacheUnavailableError
from ..core.config import Settings, get_settings
from ..core.errors import ErrorKind, HandoffError, forbidden, transient
from ..core.rate_limiter import RateLimiter, client_key_from_request, get_rate_limiter
from ..core.result_types import Err
from ..identity import SessionVerifier, extract_bearer, get_session_verifier
from ..models.handoff import Principal
from ..services.handoff_service import HandoffService, get_handoff_service
from .response_patterns import HandoffHTTPException


@beartype
def get_settings_dependency() -> Settings:
    """Provide settings for dependency injection."""
    return get_settings()


def get_verifier_dependency() -> SessionVerifier:
    """Provide the session verifier for dependency injection."""
    return get_session_verifier()


def get_rate_limiter_dependency() -> RateLimiter:
    """Provide the rate limiter for dependency injection."""
    return get_rate_limiter()


def get_handoff_service_dependency() -> HandoffService:
    """Provide the handoff service for dependency injection."""
    return get_handoff_service()


async def get_current_principal(
    verifier: Annotated[SessionVerifier, Depends(get_verifier_dependency)],
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Resolve the caller's principal from a bearer session credential.

    Raises:
        HandoffHTTPException: If the credential is absent or not accepted.
    """
    credential = extract_bearer(authorization)
    if isinstance(credential, Err):
        raise HandoffHTTPException(credential.error)

    principal = await verifier.verify(credential.value)
    if isinstance(principal, Err):
        raise HandoffHTTPException(principal.error)
    return principal.value


def rate_limit(rule_name: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency enforcing the named rate limit rule."""

    async def _enforce(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter_dependency)],
    ) -> None:
        rule = limiter.config.rule(rule_name)
        try:
            allowed = await limiter.allow(client_key_from_request(request), rule)
        except CacheUnavailableError as e:
            raise HandoffHTTPException(transient(f"rate limiter: {e}")) from e
        if not allowed:
            raise HandoffHTTPException(
                HandoffError(ErrorKind.RATE_LIMITED),
                headers={"Retry-After": str(rule.window_seconds)},
            )

    return _enforce


def require_allowed_origin(
    settings: Annotated[Settings, Depends(get_settings_dependency)],
    origin: Annotated[str | None, Header()] = None,
) -> None:
    """Reject callers whose Origin is not in the configured CORS origins.

    A request without an Origin header is rejected as well.
    """
    if origin is None or origin not in settings.api_cors_origins:
        raise HandoffHTTPException(
            forbidden("Origin not allowed", detail=f"origin={origin!r}")
        )


def require_delivery(
    mode: Literal["state_exchange", "cookie"],
) -> Callable[..., None]:
    """Build a dependency that hides endpoints of the inactive delivery flow."""

    def _check(
        settings: Annotated[Settings, Depends(get_settings_dependency)],
    ) -> None:
        if settings.handoff_delivery != mode:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    return _check


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
HandoffServiceDep = Annotated[HandoffService, Depends(get_handoff_service_dependency)]
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]
