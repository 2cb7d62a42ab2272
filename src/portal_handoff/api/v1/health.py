# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Liveness endpoint."""

from datetime import datetime, timezone

from beartype import beartype
from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import SettingsDep

router = APIRouter()

APP_START_TIME = datetime.now(timezone.utc)


class HealthResponse(BaseModel):
    """Overall service health response."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    status: str = Field(..., pattern=r"^(healthy|unhealthy|degraded)$")
    timestamp: datetime = Field(..., description="Health check timestamp")
    environment: str = Field(..., description="Environment name")
    delivery: str = Field(..., description="Active handoff delivery flow")
    uptime_seconds: float = Field(..., ge=0, description="Uptime in seconds")


@router.get("/health", response_model=HealthResponse)
@beartype
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Report that the process is up."""
    now = datetime.now(timezone.utc)
    return HealthResponse(
        status="healthy",
        timestamp=now,
        environment=settings.api_env,
        delivery=settings.handoff_delivery,
        uptime_seconds=(now - APP_START_TIME).total_seconds(),
    )
