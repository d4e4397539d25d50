# Overview: Pytest coverage for identity token issue, verify, reissue and cookie transport.

import pytest
from jose import jwt

from backoffice.services import token_service
from backoffice.services.token_service import InvalidTokenError
from backoffice.time_utils import epoch_seconds


def _claims(**overrides):
    now = epoch_seconds()
    claims = {
        "id": 1,
        "name": "Alice",
        "email": "alice@acme.com",
        "company_id": 1,
        "company_name": "Acme",
        "manage_products": True,
        "manage_inventory": True,
        "manage_users": True,
        "iat": now,
        "exp": now + 3600,
    }
    claims.update(overrides)
    return claims


class TestIssueAndVerify:

    def test_round_trip_carries_identity_and_flags(self, app, acme):
        company, owner = acme
        payload = token_service.verify_token(token_service.issue_token(owner, company))

        assert payload["id"] == owner.id
        assert payload["company_id"] == company.id
        assert payload["company_name"] == "Acme"
        assert payload["email"] == "alice@acme.com"
        assert payload["manage_products"] is True
        assert payload["manage_inventory"] is True
        assert payload["manage_users"] is True

    def test_expiry_is_thirty_day_window(self, app, acme):
        company, owner = acme
        payload = token_service.verify_token(token_service.issue_token(owner, company))
        assert payload["exp"] - payload["iat"] == 30 * 24 * 3600

    def test_missing_token_rejected(self, app):
        with pytest.raises(InvalidTokenError):
            token_service.verify_token(None)
        with pytest.raises(InvalidTokenError):
            token_service.verify_token("")

    def test_wrong_signature_rejected(self, app):
        forged = jwt.encode(_claims(), "some-other-secret", algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            token_service.verify_token(forged)

    def test_expired_token_rejected(self, app):
        expired = jwt.encode(
            _claims(iat=epoch_seconds() - 7200, exp=epoch_seconds() - 60),
            app.config["JWT_SECRET"],
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            token_service.verify_token(expired)

    def test_garbage_rejected(self, app):
        with pytest.raises(InvalidTokenError):
            token_service.verify_token("not.a.token")

    @pytest.mark.parametrize("claim,value", [("id", "1"), ("company_id", None), ("id", True)])
    def test_non_integer_identity_claims_rejected(self, app, claim, value):
        token = jwt.encode(_claims(**{claim: value}), app.config["JWT_SECRET"], algorithm="HS256")
        with pytest.raises(InvalidTokenError):
            token_service.verify_token(token)


class TestReissue:

    def test_keeps_absolute_expiry_and_merges_change(self, app):
        old_exp = epoch_seconds() + 500
        payload = _claims(exp=old_exp)

        token, remaining = token_service.reissue_token(payload, name="Alicia")
        new_payload = token_service.verify_token(token)

        assert new_payload["name"] == "Alicia"
        assert new_payload["exp"] == old_exp
        assert new_payload["id"] == payload["id"]
        assert 0 < remaining <= 500

    def test_remaining_is_at_least_one_second(self, app):
        payload = _claims(exp=epoch_seconds())
        _, remaining = token_service.reissue_token(payload, name="Alicia")
        assert remaining >= 1

    def test_unknown_claim_change_rejected(self, app):
        with pytest.raises(ValueError):
            token_service.reissue_token(_claims(), is_admin=True)


class TestCookieTransport:

    def test_cookie_attributes(self, app):
        with app.test_request_context():
            response = app.response_class("{}")
            token_service.set_token_cookie(response, "abc", max_age=120)
            header = response.headers["Set-Cookie"]

        assert header.startswith("token=abc")
        assert "HttpOnly" in header
        assert "SameSite=Strict" in header
        assert "Path=/" in header
        assert "Max-Age=120" in header

    def test_clear_cookie_expires_it(self, app):
        with app.test_request_context():
            response = app.response_class("{}")
            token_service.clear_token_cookie(response)
            header = response.headers["Set-Cookie"]

        assert header.startswith("token=")
        assert "Max-Age=0" in header

    def test_bearer_header_fallback(self, app):
        with app.test_request_context(headers={"Authorization": "Bearer xyz"}):
            from flask import request
            assert token_service.token_from_request(request) == "xyz"

    def test_cookie_preferred_over_header(self, app):
        with app.test_request_context(
            headers={"Authorization": "Bearer from-header", "Cookie": "token=from-cookie"}
        ):
            from flask import request
            assert token_service.token_from_request(request) == "from-cookie"
