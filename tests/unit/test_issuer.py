"""Unit tests for the token issuer."""

import logging

import pytest

from portal_handoff.core.errors import ErrorKind
from portal_handoff.core.result_types import Err, Ok
from portal_handoff.models.handoff import Principal, TargetScope
from portal_handoff.tokens.issuer import TokenIssuer
from portal_handoff.tokens.validator import ClaimsValidator

ISSUER = "dexintelligence.ai"
AUDIENCE = "app.dexintelligence.ai"
NOW = 1_700_000_000


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(issuer=ISSUER, audience=AUDIENCE, purpose="market-mapper-access")


@pytest.fixture
def validator() -> ClaimsValidator:
    return ClaimsValidator(issuer=ISSUER, audience=AUDIENCE)


class TestIssue:
    """Issuance rules."""

    def test_authorized_end_to_end(
        self,
        issuer: TokenIssuer,
        validator: ClaimsValidator,
        principal: Principal,
        scope: TargetScope,
    ) -> None:
        result = issuer.issue(principal, scope, NOW)
        assert isinstance(result, Ok)
        issued = result.value
        assert issued.claims.exp - issued.claims.iat == 120
        assert issued.expires_in == 120

        assert isinstance(validator.validate_token(issued.token, "s", NOW + 60), Ok)
        late = validator.validate_token(issued.token, "s", NOW + 121)
        assert isinstance(late, Err)
        assert late.error.kind is ErrorKind.EXPIRED

    def test_claims_content(
        self, issuer: TokenIssuer, principal: Principal, scope: TargetScope
    ) -> None:
        claims = issuer.issue(principal, scope, NOW).unwrap().claims
        assert claims.sub == "u1"
        assert claims.email == "a@x.com"
        assert claims.iss == ISSUER
        assert claims.aud == AUDIENCE
        assert claims.purpose == "market-mapper-access"
        assert claims.scope == "Market Mapper"
        assert len(claims.nonce) == 32
        assert claims.jti is not None and len(claims.jti) == 32

    def test_nonce_and_jti_fresh_per_call(
        self, issuer: TokenIssuer, principal: Principal, scope: TargetScope
    ) -> None:
        first = issuer.issue(principal, scope, NOW).unwrap()
        second = issuer.issue(principal, scope, NOW).unwrap()
        assert first.claims.nonce != second.claims.nonce
        assert first.claims.jti != second.claims.jti
        assert first.token != second.token

    def test_unauthorized_principal_never_gets_a_token(
        self, issuer: TokenIssuer, scope: TargetScope
    ) -> None:
        outsider = Principal(id="u2", email="b@y.com")
        result = issuer.issue(outsider, scope, NOW)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.FORBIDDEN

    def test_email_match_ignores_case(
        self, issuer: TokenIssuer, scope: TargetScope
    ) -> None:
        shouting = Principal(id="u1", email="A@X.COM")
        assert isinstance(issuer.issue(shouting, scope, NOW), Ok)

    def test_missing_secret_fails_closed(
        self, issuer: TokenIssuer, principal: Principal
    ) -> None:
        scope = TargetScope(
            id="dep-x", name="No Secret", authorized_emails=frozenset({"a@x.com"})
        )
        result = issuer.issue(principal, scope, NOW)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.CONFIG_ERROR
        assert result.error.message == "Server configuration error"

    def test_inactive_scope_is_forbidden(
        self, issuer: TokenIssuer, principal: Principal, scope: TargetScope
    ) -> None:
        inactive = scope.model_copy(update={"is_active": False})
        result = issuer.issue(principal, inactive, NOW)
        assert isinstance(result, Err)
        assert result.error.kind is ErrorKind.FORBIDDEN

    def test_lifetime_is_capped(self) -> None:
        with pytest.raises(ValueError):
            TokenIssuer(issuer=ISSUER, audience=AUDIENCE, lifetime_seconds=121)


class TestAuditLog:
    """Issuance leaves an audit trail without secrets."""

    def test_audit_line_has_identity_but_no_secret(
        self,
        issuer: TokenIssuer,
        principal: Principal,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        scope = TargetScope(
            id="dep-1",
            name="Market Mapper",
            secret="super-secret-value",
            authorized_emails=frozenset({"a@x.com"}),
        )
        with caplog.at_level(logging.INFO, logger="portal_handoff.audit"):
            issued = issuer.issue(principal, scope, NOW).unwrap()

        audit = [r for r in caplog.records if r.name == "portal_handoff.audit"]
        assert len(audit) == 1
        line = audit[0].getMessage()
        assert "u1" in line and "a@x.com" in line and "dep-1" in line
        assert "super-secret-value" not in line
        assert issued.token not in line

    def test_refusal_writes_no_audit_line(
        self, issuer: TokenIssuer, scope: TargetScope, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.INFO, logger="portal_handoff.audit"):
            issuer.issue(Principal(id="u2", email="b@y.com"), scope, NOW)
        assert not [r for r in caplog.records if r.name == "portal_handoff.audit"]
