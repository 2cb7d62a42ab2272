# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""API response patterns: Result[T, HandoffError] to HTTP.

Every failure leaves the service as ``{"error": ..., "code": ...}``. Only the
public message of a :class:`HandoffError` is rendered; its detail goes to the
server log.
"""

from typing import TypeVar

from beartype import beartype
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import ErrorKind, HandoffError, malformed
from ..core.logging_utils import get_logger
from ..core.result_types import Result

T = TypeVar("T")

logger = get_logger(__name__)


@beartype
class ErrorResponse(BaseModel):
    """Uniform error body."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_assignment=True,
        str_strip_whitespace=True,
        validate_default=True,
    )

    error: str = Field(..., description="Human-readable error message")
    code: str | None = Field(default=None, description="Machine-readable error kind")


class HandoffHTTPException(HTTPException):
    """HTTPException that carries a classified :class:`HandoffError`."""

    def __init__(
        self, error: HandoffError, headers: dict[str, str] | None = None
    ) -> None:
        super().__init__(
            status_code=error.status_code, detail=error.message, headers=headers
        )
        self.error = error


@beartype
def log_failure(error: HandoffError, endpoint: str) -> None:
    """Log a failure with its internal detail."""
    if error.kind in (ErrorKind.CONFIG_ERROR, ErrorKind.TRANSIENT_ERROR):
        logger.error("%s on %s: %s", error.kind.value, endpoint, error.detail)
    else:
        logger.info(
            "%s on %s: %s", error.kind.value, endpoint, error.detail or error.message
        )


@beartype
def error_body(error: HandoffError) -> ErrorResponse:
    return ErrorResponse(error=error.message, code=error.kind.value)


@beartype
def handle_result(
    result: Result[T, HandoffError],
    response: Response,
    success_status: int = 200,
    endpoint: str = "",
) -> T | ErrorResponse:
    """Convert a service Result into a body, setting the status code.

    Args:
        result: Service layer Result
        response: FastAPI Response object to set status code
        success_status: HTTP status for successful operations
        endpoint: Route name for the failure log line

    Returns:
        Either the unwrapped success value or ErrorResponse
    """
    if result.is_err():
        error = result.unwrap_err()
        log_failure(error, endpoint)
        response.status_code = error.status_code
        return error_body(error)

    response.status_code = success_status
    return result.unwrap()


async def _handoff_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if isinstance(exc, HandoffHTTPException):
        log_failure(exc.error, request.url.path)
        body = error_body(exc.error)
    else:
        body = ErrorResponse(error=str(exc.detail))
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    error = malformed("Invalid request body", detail=str(exc.errors()))
    log_failure(error, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body(error).model_dump(),
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error="Internal server error").model_dump(),
    )


@beartype
def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers that keep every error body in the uniform shape."""
    app.add_exception_handler(StarletteHTTPException, _handoff_http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
