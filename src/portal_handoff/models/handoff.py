# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain entities of the handoff protocol."""

from typing import Any

from pydantic import Field, model_validator

from .base import BaseModelConfig


class Principal(BaseModelConfig):
    """An identity derived from a verified session. Never persisted here."""

    id: str = Field(..., min_length=1, description="Stable subject identifier")
    email: str = Field(..., min_length=1, description="Principal email")


class TargetScope(BaseModelConfig):
    """A downstream deployment a principal may be authorized to reach."""

    id: str = Field(..., min_length=1, description="Scope identifier")
    name: str = Field(..., min_length=1, description="Human readable name")
    secret: str = Field(default="", repr=False, description="Signing secret")
    authorized_emails: frozenset[str] = Field(default_factory=frozenset)
    is_active: bool = Field(default=True)
    app_url: str | None = Field(default=None)

    def authorizes(self, principal: Principal) -> bool:
        """Check whether ``principal`` is in the authorized set."""
        return principal.email.lower() in {e.lower() for e in self.authorized_emails}


class TokenClaims(BaseModelConfig):
    """Claims carried by a handoff token."""

    sub: str
    email: str
    iat: int
    exp: int
    iss: str
    aud: str
    nonce: str
    purpose: str | None = None
    jti: str | None = None
    scope: str | None = None

    @model_validator(mode="after")
    def check_window(self) -> "TokenClaims":
        if self.exp <= self.iat:
            raise ValueError("exp must be after iat")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Claims as a JSON-ready dict, without unset optionals."""
        return self.model_dump(exclude_none=True)


class IssuedToken(BaseModelConfig):
    """A freshly minted token and its timing."""

    token: str = Field(..., repr=False)
    claims: TokenClaims
    scope_id: str

    @property
    def expires_in(self) -> int:
        return self.claims.exp - self.claims.iat


class ExchangeState(BaseModelConfig):
    """A one-time record mapping a state handle to a token."""

    state_id: str
    token: str = Field(..., repr=False)
    principal_id: str
    created_at: float
    expires_at: float

    def is_expired(self, now: float | int) -> bool:
        return now > self.expires_at


class ConsumedState(BaseModelConfig):
    """What a successful exchange hands back."""

    token: str = Field(..., repr=False)
    principal_id: str
