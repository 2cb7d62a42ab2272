# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Compact three-segment token format: ``header.claims.signature``.

Header and claims are base64url-encoded compact JSON objects; the signature
is the base64url HMAC-SHA256 over the literal ``header.claims`` string.
Decoding never checks the signature.
"""

import json
from typing import Any

from attrs import field, frozen
from beartype import beartype

from ..core.errors import HandoffError, malformed
from ..core.result_types import Err, Ok, Result
from .signing import ALGORITHM, b64url_decode, b64url_encode, sign_segments

DEFAULT_HEADER: dict[str, str] = {"alg": ALGORITHM, "typ": "JWT"}


@frozen
class DecodedToken:
    """A token split into its parsed parts, signature not yet checked."""

    header: dict[str, Any] = field()
    claims: dict[str, Any] = field()
    signature: str = field(repr=False)
    signing_input: str = field(repr=False)


def _json_segment(obj: dict[str, Any]) -> str:
    return b64url_encode(
        json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    )


@beartype
def encode(claims: dict[str, Any], secret: str, header: dict[str, Any] | None = None) -> str:
    """Serialize and sign ``claims``."""
    signing_input = f"{_json_segment(header or DEFAULT_HEADER)}.{_json_segment(claims)}"
    return f"{signing_input}.{sign_segments(signing_input, secret)}"


def _parse_segment(segment: str, what: str) -> dict[str, Any]:
    try:
        parsed = json.loads(b64url_decode(segment).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as e:
        raise ValueError(f"{what} segment is not base64url JSON") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"{what} segment is not a JSON object")
    return parsed


@beartype
def decode(token: str) -> Result[DecodedToken, HandoffError]:
    """Split and parse a token without verifying it."""
    parts = token.split(".")
    if len(parts) != 3:
        return Err(malformed("Invalid token format", f"{len(parts)} segments"))

    header_segment, claims_segment, signature = parts
    try:
        header = _parse_segment(header_segment, "header")
        claims = _parse_segment(claims_segment, "claims")
    except ValueError as e:
        return Err(malformed("Invalid token format", str(e)))

    return Ok(
        DecodedToken(
            header=header,
            claims=claims,
            signature=signature,
            signing_input=f"{header_segment}.{claims_segment}",
        )
    )
