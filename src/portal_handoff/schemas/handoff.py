# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Request and response bodies of the handoff endpoints.

Wire names are camelCase; Python attributes are snake_case.
"""

from pydantic import BaseModel, ConfigDict, Field


class _RequestBody(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class _ResponseBody(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        populate_by_name=True,
        validate_default=True,
    )


class IssueRequest(_RequestBody):
    """Optional target deployment for issuance."""

    deployment_id: str | None = Field(
        default=None, alias="deploymentId", max_length=200
    )


class ExchangeRequest(_RequestBody):
    """State handle presented by the destination application."""

    # Surrounding whitespace makes the handle malformed.
    model_config = ConfigDict(str_strip_whitespace=False)

    state_id: str = Field(..., alias="stateId", max_length=100)


class ValidateRequest(_RequestBody):
    """Token presented by the destination application for verification."""

    token: str = Field(..., min_length=1, max_length=8192)
    deployment_id: str | None = Field(
        default=None, alias="deploymentId", max_length=200
    )


class StateResponse(_ResponseBody):
    state_id: str = Field(..., alias="stateId")
    expires_in: int = Field(..., alias="expiresIn", description="Seconds")


class ExchangeResponse(_ResponseBody):
    token: str


class TokenResponse(_ResponseBody):
    token: str
    expires_in: int = Field(..., alias="expiresIn", description="Seconds")
    expires_at: int = Field(..., alias="expiresAt", description="Epoch milliseconds")


class ValidateResponse(_ResponseBody):
    valid: bool
    user_id: str = Field(..., alias="userId")
    email: str
    expires: int | None = Field(default=None, description="Epoch milliseconds")


class DeploymentOut(_ResponseBody):
    """A launchable deployment. Never carries the signing secret."""

    id: str
    name: str
    is_active: bool = Field(..., alias="isActive")
    app_url: str | None = Field(default=None, alias="appUrl")


class DeploymentsResponse(_ResponseBody):
    deployments: list[DeploymentOut]
