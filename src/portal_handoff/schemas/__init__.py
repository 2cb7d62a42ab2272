# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API schemas."""

from .handoff import (
    DeploymentOut,
    DeploymentsResponse,
    ExchangeRequest,
    ExchangeResponse,
    IssueRequest,
    StateResponse,
    TokenResponse,
    ValidateRequest,
    ValidateResponse,
)

__all__ = [
    "DeploymentOut",
    "DeploymentsResponse",
    "ExchangeRequest",
    "ExchangeResponse",
    "IssueRequest",
    "StateResponse",
    "TokenResponse",
    "ValidateRequest",
    "ValidateResponse",
]
