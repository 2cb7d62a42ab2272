# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Verification of handoff tokens.

Checks run in a fixed order and stop at the first failure:

1. signature, recomputed with the caller's secret (``INVALID_SIGNATURE``)
2. expiry, when ``exp`` is present (``EXPIRED``)
3. pinned issuer and audience (``INVALID_CLAIMS``)
"""

import time
from typing import Any

from attrs import field, frozen
from beartype import beartype

from ..core.config import get_settings
from ..core.errors import ErrorKind, HandoffError, config_error
from ..core.result_types import Err, Ok, Result
from .codec import DecodedToken, decode
from .signing import verify_segments


@frozen
class ClaimsValidator:
    """Validates decoded tokens against a pinned issuer and audience."""

    issuer: str = field()
    audience: str = field()

    @classmethod
    def from_settings(cls) -> "ClaimsValidator":
        settings = get_settings()
        return cls(issuer=settings.handoff_issuer, audience=settings.handoff_audience)

    @beartype
    def validate(
        self, decoded: DecodedToken, secret: str, now: float | int | None = None
    ) -> Result[dict[str, Any], HandoffError]:
        """Return the claims of ``decoded`` if it is authentic and current."""
        if not secret:
            return Err(config_error("verification secret is empty"))

        if not verify_segments(decoded.signing_input, decoded.signature, secret):
            return Err(HandoffError(ErrorKind.INVALID_SIGNATURE))

        claims = decoded.claims
        now_ms = int((time.time() if now is None else now) * 1000)
        exp = claims.get("exp")
        if exp is not None:
            if isinstance(exp, bool) or not isinstance(exp, (int, float)):
                return Err(
                    HandoffError(ErrorKind.INVALID_CLAIMS, detail="exp is not numeric")
                )
            if exp * 1000 < now_ms:
                return Err(HandoffError(ErrorKind.EXPIRED, "Token expired"))

        if claims.get("iss") != self.issuer:
            return Err(HandoffError(ErrorKind.INVALID_CLAIMS, "Invalid issuer"))
        if claims.get("aud") != self.audience:
            return Err(HandoffError(ErrorKind.INVALID_CLAIMS, "Invalid audience"))

        return Ok(claims)

    @beartype
    def validate_token(
        self, token: str, secret: str, now: float | int | None = None
    ) -> Result[dict[str, Any], HandoffError]:
        """Decode then validate a raw token string."""
        decoded = decode(token)
        if isinstance(decoded, Err):
            return decoded
        return self.validate(decoded.value, secret, now)
