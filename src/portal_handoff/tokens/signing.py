# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""HMAC-SHA256 signing primitives and unpadded base64url helpers."""

import base64
import binascii
import hashlib
import hmac

from beartype import beartype

ALGORITHM = "HS256"


@beartype
def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@beartype
def b64url_decode(segment: str) -> bytes:
    """Decode an unpadded base64url segment.

    Raises:
        ValueError: If the segment is not valid base64url.
    """
    if "=" in segment:
        raise ValueError("Padding is not allowed in token segments")
    padded = segment + "=" * (-len(segment) % 4)
    try:
        return base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64url segment: {e}") from e


@beartype
def sign(message: bytes, secret: bytes) -> bytes:
    """Compute the HMAC-SHA256 of ``message``."""
    return hmac.new(secret, message, hashlib.sha256).digest()


@beartype
def verify(message: bytes, signature: bytes, secret: bytes) -> bool:
    """Recompute the signature and compare in constant time."""
    return hmac.compare_digest(sign(message, secret), signature)


@beartype
def sign_segments(signing_input: str, secret: str) -> str:
    """Sign ``header.claims`` and return the base64url signature segment."""
    return b64url_encode(sign(signing_input.encode("ascii"), secret.encode("utf-8")))


@beartype
def verify_segments(signing_input: str, signature_segment: str, secret: str) -> bool:
    """Check a base64url signature segment against ``header.claims``."""
    expected = sign_segments(signing_input, secret)
    return hmac.compare_digest(
        expected.encode("ascii"), signature_segment.encode("utf-8")
    )
