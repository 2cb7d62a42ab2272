# PortalHandoff - Cross-Domain Access Handoff Service
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Error taxonomy shared by every handoff component.

Components never raise for expected failures; they return
``Err(HandoffError(...))``. The API layer maps :class:`ErrorKind` onto an HTTP
status and renders only :attr:`HandoffError.message`, which is always safe to
show a client. :attr:`HandoffError.detail` is for server-side logs only.
"""

from enum import Enum

from attrs import field, frozen


class ErrorKind(str, Enum):
    """Failure categories of the handoff protocol."""

    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"
    CONFIG_ERROR = "CONFIG_ERROR"
    MALFORMED_INPUT = "MALFORMED_INPUT"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_CLAIMS = "INVALID_CLAIMS"
    EXPIRED = "EXPIRED"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    TRANSIENT_ERROR = "TRANSIENT_ERROR"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.CONFIG_ERROR: 500,
    ErrorKind.MALFORMED_INPUT: 400,
    ErrorKind.INVALID_SIGNATURE: 401,
    ErrorKind.INVALID_CLAIMS: 401,
    ErrorKind.EXPIRED: 401,
    ErrorKind.NOT_FOUND: 401,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TRANSIENT_ERROR: 500,
}

# Kinds whose public message must not reveal anything about the cause.
_OPAQUE_KINDS = frozenset({ErrorKind.CONFIG_ERROR, ErrorKind.TRANSIENT_ERROR})

_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.UNAUTHENTICATED: "Invalid or expired session",
    ErrorKind.FORBIDDEN: "Not authorized for this deployment",
    ErrorKind.CONFIG_ERROR: "Server configuration error",
    ErrorKind.MALFORMED_INPUT: "Invalid request",
    ErrorKind.INVALID_SIGNATURE: "Invalid signature",
    ErrorKind.INVALID_CLAIMS: "Invalid token claims",
    ErrorKind.EXPIRED: "Expired",
    ErrorKind.NOT_FOUND: "Invalid or expired state",
    ErrorKind.RATE_LIMITED: "Too many requests. Please try again later.",
    ErrorKind.TRANSIENT_ERROR: "Service temporarily unavailable",
}


@frozen
class HandoffError:
    """A classified failure with a client-safe message."""

    kind: ErrorKind = field()
    message: str = field(default="")
    detail: str | None = field(default=None)

    def __attrs_post_init__(self) -> None:
        if self.kind in _OPAQUE_KINDS or not self.message:
            object.__setattr__(self, "message", _DEFAULT_MESSAGES[self.kind])

    @property
    def status_code(self) -> int:
        """HTTP status for this failure."""
        return HTTP_STATUS_BY_KIND[self.kind]

    @property
    def retryable(self) -> bool:
        """Whether the caller may retry the same request."""
        return self.kind is ErrorKind.TRANSIENT_ERROR

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


def unauthenticated(message: str = "", detail: str | None = None) -> HandoffError:
    return HandoffError(ErrorKind.UNAUTHENTICATED, message, detail)


def forbidden(message: str = "", detail: str | None = None) -> HandoffError:
    return HandoffError(ErrorKind.FORBIDDEN, message, detail)


def config_error(detail: str) -> HandoffError:
    return HandoffError(ErrorKind.CONFIG_ERROR, detail=detail)


def malformed(message: str, detail: str | None = None) -> HandoffError:
    return HandoffError(ErrorKind.MALFORMED_INPUT, message, detail)


def transient(detail: str) -> HandoffError:
    return HandoffError(ErrorKind.TRANSIENT_ERROR, detail=detail)
