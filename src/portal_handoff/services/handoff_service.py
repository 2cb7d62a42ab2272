# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Handoff business logic: issuance, state exchange and validation."""

import time
from typing import Any

from attrs import field, frozen
from beartype import beartype

from ..core.config import get_settings
from ..core.errors import HandoffError, forbidden, malformed
from ..core.logging_utils import get_audit_logger, get_logger, redact_token
from ..core.result_types import Err, Ok, Result
from ..exchange import ExchangeStore, get_exchange_store, is_valid_state_id
from ..models.handoff import ConsumedState, IssuedToken, Principal
from ..scopes import TargetScopeRepository, get_scope_repository, resolve_scope
from ..tokens import ClaimsValidator, TokenIssuer

logger = get_logger(__name__)
audit_logger = get_audit_logger()


@frozen
class StateHandle:
    """What the browser receives from the indirect flow."""

    state_id: str = field()
    expires_in: int = field()


class HandoffService:
    """Service for the cross-domain handoff protocol."""

    def __init__(
        self,
        issuer: TokenIssuer,
        validator: ClaimsValidator,
        store: ExchangeStore,
        scopes: TargetScopeRepository,
        state_ttl_seconds: int = 300,
        fallback_secret: str | None = None,
    ) -> None:
        self._issuer = issuer
        self._validator = validator
        self._store = store
        self._scopes = scopes
        self._state_ttl = state_ttl_seconds
        self._fallback_secret = fallback_secret

    @property
    def scopes(self) -> TargetScopeRepository:
        return self._scopes

    @beartype
    async def issue_direct(
        self,
        principal: Principal,
        deployment_id: str | None = None,
        now: float | int | None = None,
    ) -> Result[IssuedToken, HandoffError]:
        """Mint a token for the principal's target deployment."""
        scope = await resolve_scope(self._scopes, principal, deployment_id)
        if isinstance(scope, Err):
            return scope
        return self._issuer.issue(principal, scope.value, now)

    @beartype
    async def create_state(
        self,
        principal: Principal,
        deployment_id: str | None = None,
        now: float | int | None = None,
    ) -> Result[StateHandle, HandoffError]:
        """Mint a token and park it behind a one-time state handle."""
        current_time = time.time() if now is None else now
        issued = await self.issue_direct(principal, deployment_id, current_time)
        if isinstance(issued, Err):
            return issued

        created = await self._store.create(
            principal, issued.value.token, self._state_ttl, current_time
        )
        if isinstance(created, Err):
            return created

        audit_logger.info(
            "Auth state created: user=%s scope=%s ttl=%ds",
            principal.id,
            issued.value.scope_id,
            self._state_ttl,
        )
        return Ok(StateHandle(state_id=created.value, expires_in=self._state_ttl))

    @beartype
    async def exchange_state(
        self, state_id: str, now: float | int | None = None
    ) -> Result[ConsumedState, HandoffError]:
        """Trade a state handle for its token, exactly once."""
        if not is_valid_state_id(state_id):
            return Err(malformed("Invalid state ID format"))

        # Ids are issued lower-case; hex digits compare case-insensitively.
        consumed = await self._store.consume(state_id.lower(), now)
        if isinstance(consumed, Err):
            logger.warning(
                "Auth state exchange failed: %s", consumed.error.kind.value
            )
            return consumed

        audit_logger.info(
            "Auth state exchanged: user=%s token=%s",
            consumed.value.principal_id,
            redact_token(consumed.value.token),
        )
        return consumed

    @beartype
    async def validate_token(
        self,
        token: str,
        deployment_id: str | None = None,
        now: float | int | None = None,
    ) -> Result[dict[str, Any], HandoffError]:
        """Verify a token with the secret of the named deployment.

        Without a deployment the fallback (global) secret is used.
        """
        secret = self._fallback_secret or ""
        if deployment_id:
            found = await self._scopes.get(deployment_id)
            if isinstance(found, Err):
                return found
            if found.value is None:
                return Err(forbidden("Deployment not found or access denied"))
            secret = found.value.secret

        result = self._validator.validate_token(token, secret, now)
        if isinstance(result, Err):
            logger.warning(
                "Token validation failed: %s token=%s deployment=%s",
                result.error.kind.value,
                redact_token(token),
                deployment_id,
            )
            return result

        audit_logger.info(
            "Token validated: user=%s deployment=%s",
            result.value.get("sub"),
            deployment_id,
        )
        return result


_service: HandoffService | None = None


@beartype
def get_handoff_service() -> HandoffService:
    """Get the global handoff service wired from settings."""
    global _service
    if _service is None:
        settings = get_settings()
        _service = HandoffService(
            issuer=TokenIssuer.from_settings(),
            validator=ClaimsValidator.from_settings(),
            store=get_exchange_store(),
            scopes=get_scope_repository(),
            state_ttl_seconds=settings.state_ttl_seconds,
            fallback_secret=settings.global_jwt_secret,
        )
    return _service


@beartype
def reset_handoff_service() -> None:
    """Drop the global service (for testing)."""
    global _service
    _service = None
