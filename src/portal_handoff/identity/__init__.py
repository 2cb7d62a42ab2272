# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Identity provider integration."""

from .session import (
    JwtSessionVerifier,
    RemoteSessionVerifier,
    SessionVerifier,
    extract_bearer,
    get_session_verifier,
    reset_session_verifier,
)

__all__ = [
    "JwtSessionVerifier",
    "RemoteSessionVerifier",
    "SessionVerifier",
    "extract_bearer",
    "get_session_verifier",
    "reset_session_verifier",
]
