# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Handoff token signing, encoding, validation and issuance."""

from .codec import DecodedToken, decode, encode
from .issuer import TokenIssuer
from .validator import ClaimsValidator

__all__ = ["DecodedToken", "decode", "encode", "TokenIssuer", "ClaimsValidator"]
