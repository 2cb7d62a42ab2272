# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Domain models."""

from .base import BaseModelConfig
from .handoff import (
    ConsumedState,
    ExchangeState,
    IssuedToken,
    Principal,
    TargetScope,
    TokenClaims,
)

__all__ = [
    "BaseModelConfig",
    "ConsumedState",
    "ExchangeState",
    "IssuedToken",
    "Principal",
    "TargetScope",
    "TokenClaims",
]
