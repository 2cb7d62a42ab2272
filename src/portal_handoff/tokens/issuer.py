# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Minting of short-lived handoff tokens for a target scope."""

import secrets
import time

from attrs import field, frozen
from beartype import beartype

from ..core.config import MAX_TOKEN_LIFETIME_SECONDS, get_settings
from ..core.errors import HandoffError, config_error, forbidden
from ..core.logging_utils import get_audit_logger, get_logger
from ..core.result_types import Err, Ok, Result
from ..models.handoff import IssuedToken, Principal, TargetScope, TokenClaims
from .codec import encode

logger = get_logger(__name__)
audit_logger = get_audit_logger()


@frozen
class TokenIssuer:
    """Issues tokens carrying the claims the destination application expects.

    One issuer serves every scope; the signing secret and the authorized set
    always come from the :class:`TargetScope` passed to :meth:`issue`.
    """

    issuer: str = field()
    audience: str = field()
    purpose: str | None = field(default=None)
    lifetime_seconds: int = field(default=MAX_TOKEN_LIFETIME_SECONDS)

    @lifetime_seconds.validator
    def _check_lifetime(self, attribute: object, value: int) -> None:
        if not 0 < value <= MAX_TOKEN_LIFETIME_SECONDS:
            raise ValueError(
                f"lifetime_seconds must be in (0, {MAX_TOKEN_LIFETIME_SECONDS}]"
            )

    @classmethod
    def from_settings(cls) -> "TokenIssuer":
        settings = get_settings()
        return cls(
            issuer=settings.handoff_issuer,
            audience=settings.handoff_audience,
            purpose=settings.handoff_purpose,
            lifetime_seconds=settings.token_lifetime_seconds,
        )

    @beartype
    def issue(
        self, principal: Principal, scope: TargetScope, now: float | int | None = None
    ) -> Result[IssuedToken, HandoffError]:
        """Mint a token for ``principal`` signed with the scope's secret.

        Fails closed: an empty secret is a configuration error and an
        unauthorized principal never gets a token.
        """
        if not scope.secret:
            logger.error("Scope %s has no signing secret configured", scope.id)
            return Err(config_error(f"scope {scope.id} has no signing secret"))

        if not scope.is_active:
            logger.warning(
                "Issuance refused for inactive scope %s (user=%s)",
                scope.id,
                principal.id,
            )
            return Err(forbidden("Deployment is not active"))

        if not scope.authorizes(principal):
            logger.warning(
                "Issuance refused: user=%s email=%s not authorized for scope %s",
                principal.id,
                principal.email,
                scope.id,
            )
            return Err(forbidden())

        iat = int(time.time() if now is None else now)
        claims = TokenClaims(
            sub=principal.id,
            email=principal.email,
            iat=iat,
            exp=iat + self.lifetime_seconds,
            iss=self.issuer,
            aud=self.audience,
            nonce=secrets.token_hex(16),
            jti=secrets.token_hex(16),
            purpose=self.purpose,
            scope=scope.name,
        )
        token = encode(claims.to_payload(), scope.secret)

        audit_logger.info(
            "Handoff token issued: user=%s email=%s scope=%s jti=%s exp=%d",
            principal.id,
            principal.email,
            scope.id,
            claims.jti,
            claims.exp,
        )
        return Ok(IssuedToken(token=token, claims=claims, scope_id=scope.id))
