# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API v1 router aggregation.

This module combines all v1 API routers into a single router
that can be mounted on the main FastAPI application.
"""

from fastapi import APIRouter

from .deployments import router as deployments_router
from .handoff import router as handoff_router
from .health import router as health_router

# Create main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(health_router, tags=["health"])
router.include_router(handoff_router, prefix="/handoff", tags=["handoff"])
router.include_router(deployments_router, prefix="/deployments", tags=["deployments"])


__all__ = ["router"]
