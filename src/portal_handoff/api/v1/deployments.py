# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Deployments the caller may launch."""

from beartype import beartype
from fastapi import APIRouter, Depends, Response

from ...core.result_types import Ok
from ...schemas.handoff import DeploymentOut, DeploymentsResponse
from ..dependencies import CurrentPrincipal, HandoffServiceDep, rate_limit
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


@router.get(
    "",
    response_model=DeploymentsResponse | ErrorResponse,
    dependencies=[Depends(rate_limit("deployments_list"))],
)
@beartype
async def list_deployments(
    response: Response,
    principal: CurrentPrincipal,
    service: HandoffServiceDep,
) -> DeploymentsResponse | ErrorResponse:
    """List active deployments that authorize the caller."""
    result = await service.scopes.list_for_principal(principal)
    if isinstance(result, Ok):
        result = Ok(
            DeploymentsResponse(
                deployments=[
                    DeploymentOut(
                        id=scope.id,
                        name=scope.name,
                        is_active=scope.is_active,
                        app_url=scope.app_url,
                    )
                    for scope in result.value
                ]
            )
        )
    return handle_result(result, response, endpoint="list_deployments")
