"""Unit tests for the error taxonomy and result types."""

import pytest

from portal_handoff.core.errors import (
    HTTP_STATUS_BY_KIND,
    ErrorKind,
    HandoffError,
    config_error,
    forbidden,
    malformed,
    transient,
)
from portal_handoff.core.result_types import Err, Ok


class TestHandoffError:
    """Status mapping and public messages."""

    @pytest.mark.parametrize(
        ("kind", "status"),
        [
            (ErrorKind.UNAUTHENTICATED, 401),
            (ErrorKind.FORBIDDEN, 403),
            (ErrorKind.CONFIG_ERROR, 500),
            (ErrorKind.MALFORMED_INPUT, 400),
            (ErrorKind.INVALID_SIGNATURE, 401),
            (ErrorKind.INVALID_CLAIMS, 401),
            (ErrorKind.EXPIRED, 401),
            (ErrorKind.NOT_FOUND, 401),
            (ErrorKind.RATE_LIMITED, 429),
            (ErrorKind.TRANSIENT_ERROR, 500),
        ],
    )
    def test_status_codes(self, kind: ErrorKind, status: int) -> None:
        assert HandoffError(kind).status_code == status

    def test_every_kind_has_a_status(self) -> None:
        assert set(HTTP_STATUS_BY_KIND) == set(ErrorKind)

    def test_config_error_message_is_opaque(self) -> None:
        error = config_error("JWT_SECRET missing for deployment dep-1")
        assert error.message == "Server configuration error"
        assert error.detail == "JWT_SECRET missing for deployment dep-1"

    def test_transient_message_is_opaque(self) -> None:
        error = HandoffError(ErrorKind.TRANSIENT_ERROR, "redis at 10.0.0.5 refused")
        assert error.message == "Service temporarily unavailable"
        assert error.retryable

    def test_default_messages(self) -> None:
        assert HandoffError(ErrorKind.NOT_FOUND).message == "Invalid or expired state"
        assert forbidden().message == "Not authorized for this deployment"

    def test_explicit_message_kept(self) -> None:
        assert malformed("Invalid state ID format").message == "Invalid state ID format"
        assert not malformed("x").retryable

    def test_str(self) -> None:
        assert str(transient("boom")) == "TRANSIENT_ERROR: Service temporarily unavailable"


class TestResult:
    def test_ok(self) -> None:
        result = Ok(2)
        assert result.is_ok() and not result.is_err()
        assert result.unwrap() == 2
        assert result.map(lambda v: v + 1).unwrap() == 3

    def test_err(self) -> None:
        result = Err(forbidden())
        assert result.is_err()
        assert result.unwrap_or(5) == 5
        assert result.unwrap_err().kind is ErrorKind.FORBIDDEN
        with pytest.raises(ValueError):
            result.unwrap()
