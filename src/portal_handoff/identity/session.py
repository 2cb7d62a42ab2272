# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Verification of identity-provider session credentials.

The principal is always derived from the verified session, never from
identity fields supplied by the client.
"""

from typing import Any, Protocol, runtime_checkable

import httpx
import jwt
from beartype import beartype

from ..core.config import get_settings
from ..core.errors import HandoffError, config_error, transient, unauthenticated
from ..core.logging_utils import get_logger
from ..core.result_types import Err, Ok, Result
from ..models.handoff import Principal

logger = get_logger(__name__)


@runtime_checkable
class SessionVerifier(Protocol):
    """Turns a bearer session credential into a :class:`Principal`."""

    async def verify(self, credential: str) -> Result[Principal, HandoffError]:
        """Verify ``credential`` with the identity provider."""
        ...


def _principal_from(data: dict[str, Any], id_key: str) -> Result[Principal, HandoffError]:
    user_id = data.get(id_key)
    email = data.get("email")
    if not isinstance(user_id, str) or not user_id:
        return Err(unauthenticated(detail="session has no subject"))
    if not isinstance(email, str) or not email:
        return Err(unauthenticated(detail=f"user {user_id} has no email"))
    return Ok(Principal(id=user_id, email=email))


class JwtSessionVerifier:
    """Verifies provider-issued HS256 session JWTs locally with PyJWT."""

    def __init__(self, secret: str | None, audience: str | None = "authenticated") -> None:
        self._secret = secret
        self._audience = audience

    @beartype
    async def verify(self, credential: str) -> Result[Principal, HandoffError]:
        if not self._secret:
            logger.error("Session JWT secret is not configured")
            return Err(config_error("session_jwt_secret missing"))

        try:
            payload = jwt.decode(
                credential,
                self._secret,
                algorithms=["HS256"],
                audience=self._audience,
                options={
                    "require": ["sub", "exp"],
                    "verify_aud": self._audience is not None,
                },
            )
        except jwt.ExpiredSignatureError:
            return Err(unauthenticated(detail="session expired"))
        except jwt.InvalidTokenError as e:
            return Err(unauthenticated(detail=f"invalid session: {e}"))

        return _principal_from(payload, "sub")


class RemoteSessionVerifier:
    """Asks the provider's user endpoint who owns the credential."""

    USER_PATH = "/auth/v1/user"

    def __init__(
        self,
        base_url: str | None,
        api_key: str | None,
        timeout_seconds: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") if base_url else None
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._client = client

    async def _get_user(self, credential: str) -> httpx.Response:
        url = f"{self._base_url}{self.USER_PATH}"
        headers = {
            "Authorization": f"Bearer {credential}",
            "apikey": self._api_key or "",
        }
        if self._client is not None:
            return await self._client.get(url, headers=headers, timeout=self._timeout)
        async with httpx.AsyncClient() as client:
            return await client.get(url, headers=headers, timeout=self._timeout)

    @beartype
    async def verify(self, credential: str) -> Result[Principal, HandoffError]:
        if not self._base_url or not self._api_key:
            logger.error("Identity provider URL or API key is not configured")
            return Err(config_error("identity provider not configured"))

        try:
            response = await self._get_user(credential)
        except httpx.TimeoutException:
            logger.warning("Identity provider timed out")
            return Err(transient("identity provider timed out"))
        except httpx.RequestError as e:
            logger.warning("Identity provider unreachable: %s", e)
            return Err(transient(f"identity provider unreachable: {e}"))

        if response.status_code in (401, 403):
            return Err(unauthenticated(detail=f"provider said {response.status_code}"))
        if response.status_code != 200:
            logger.warning("Identity provider returned HTTP %d", response.status_code)
            return Err(transient(f"identity provider HTTP {response.status_code}"))

        try:
            data = response.json()
        except ValueError:
            return Err(transient("identity provider sent invalid JSON"))
        if not isinstance(data, dict):
            return Err(unauthenticated(detail="unexpected user payload"))
        return _principal_from(data, "id")


@beartype
def extract_bearer(authorization: str | None) -> Result[str, HandoffError]:
    """Pull the credential out of an ``Authorization: Bearer ...`` header."""
    if not authorization:
        return Err(unauthenticated("No authorization header"))
    scheme, _, credential = authorization.partition(" ")
    if scheme.lower() != "bearer" or not credential.strip():
        return Err(unauthenticated("Invalid authorization header"))
    return Ok(credential.strip())


_verifier: SessionVerifier | None = None


@beartype
def get_session_verifier() -> SessionVerifier:
    """Get the global session verifier for the configured mode."""
    global _verifier
    if _verifier is None:
        settings = get_settings()
        if settings.session_verifier == "remote":
            _verifier = RemoteSessionVerifier(
                settings.identity_provider_url,
                settings.identity_provider_api_key,
                settings.identity_timeout_seconds,
            )
        else:
            _verifier = JwtSessionVerifier(
                settings.session_jwt_secret, settings.session_jwt_audience
            )
    return _verifier


@beartype
def reset_session_verifier() -> None:
    """Drop the global verifier (for testing)."""
    global _verifier
    _verifier = None
