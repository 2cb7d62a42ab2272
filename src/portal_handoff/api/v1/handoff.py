# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Handoff endpoints.

Indirect flow: ``/state`` parks a token behind a one-time handle and
``/exchange`` trades the handle for the token. Direct flow: ``/token``
returns the token and sets the cross-subdomain cookie. Only the flow named by
``handoff_delivery`` is served; the other answers 404. ``/validate`` lets a
destination verify a token it received, and only answers allowed origins.
"""

from beartype import beartype
from fastapi import APIRouter, Body, Depends, Request, Response

from ...core.result_types import Err, Ok
from ...schemas.handoff import (
    ExchangeRequest,
    ExchangeResponse,
    IssueRequest,
    StateResponse,
    TokenResponse,
    ValidateRequest,
    ValidateResponse,
)
from ...services.cookies import build_handoff_cookie
from ..dependencies import (
    CurrentPrincipal,
    HandoffServiceDep,
    SettingsDep,
    rate_limit,
    require_allowed_origin,
    require_delivery,
)
from ..response_patterns import ErrorResponse, handle_result

router = APIRouter()


@router.post(
    "/state",
    response_model=StateResponse | ErrorResponse,
    dependencies=[
        Depends(require_delivery("state_exchange")),
        Depends(rate_limit("state_create")),
    ],
)
@beartype
async def create_auth_state(
    response: Response,
    principal: CurrentPrincipal,
    service: HandoffServiceDep,
    body: IssueRequest | None = Body(default=None),
) -> StateResponse | ErrorResponse:
    """Mint a token and return a one-time state handle for it."""
    deployment_id = body.deployment_id if body else None
    result = await service.create_state(principal, deployment_id)
    if isinstance(result, Ok):
        result = Ok(
            StateResponse(
                state_id=result.value.state_id, expires_in=result.value.expires_in
            )
        )
    return handle_result(result, response, endpoint="create_auth_state")


@router.post(
    "/exchange",
    response_model=ExchangeResponse | ErrorResponse,
    dependencies=[
        Depends(require_delivery("state_exchange")),
        Depends(rate_limit("state_exchange")),
    ],
)
@beartype
async def exchange_auth_state(
    response: Response,
    body: ExchangeRequest,
    service: HandoffServiceDep,
) -> ExchangeResponse | ErrorResponse:
    """Trade a state handle for its token. Works once per handle."""
    result = await service.exchange_state(body.state_id)
    if isinstance(result, Ok):
        result = Ok(ExchangeResponse(token=result.value.token))
    return handle_result(result, response, endpoint="exchange_auth_state")


@router.post(
    "/token",
    response_model=TokenResponse | ErrorResponse,
    dependencies=[
        Depends(require_delivery("cookie")),
        Depends(rate_limit("token_issue")),
    ],
)
@beartype
async def generate_token(
    request: Request,
    response: Response,
    principal: CurrentPrincipal,
    service: HandoffServiceDep,
    settings: SettingsDep,
    body: IssueRequest | None = Body(default=None),
) -> TokenResponse | ErrorResponse:
    """Mint a token and set it as the cross-subdomain cookie."""
    deployment_id = body.deployment_id if body else None
    issued = await service.issue_direct(principal, deployment_id)
    if isinstance(issued, Err):
        return handle_result(issued, response, endpoint="generate_token")

    token = issued.value
    build_handoff_cookie(
        token.token,
        request.headers.get("host"),
        name=settings.cookie_name,
        parent_domain=settings.cookie_parent_domain,
        max_age=settings.cookie_max_age_seconds,
    ).apply(response)
    return handle_result(
        Ok(
            TokenResponse(
                token=token.token,
                expires_in=token.expires_in,
                expires_at=token.claims.exp * 1000,
            )
        ),
        response,
    )


@router.post(
    "/validate",
    response_model=ValidateResponse | ErrorResponse,
    dependencies=[
        Depends(require_allowed_origin),
        Depends(rate_limit("token_validate")),
    ],
)
@beartype
async def validate_token(
    response: Response,
    body: ValidateRequest,
    service: HandoffServiceDep,
) -> ValidateResponse | ErrorResponse:
    """Verify a handoff token on behalf of a destination application."""
    result = await service.validate_token(body.token, body.deployment_id)
    if isinstance(result, Ok):
        claims = result.value
        exp = claims.get("exp")
        result = Ok(
            ValidateResponse(
                valid=True,
                user_id=str(claims.get("sub", "")),
                email=str(claims.get("email", "")),
                expires=int(exp * 1000) if isinstance(exp, (int, float)) else None,
            )
        )
    return handle_result(result, response, endpoint="validate_token")
