"""End-to-end tests for the /auth endpoints through the Flask test client."""

from __future__ import annotations

import pytest

from tests.factories.user import DEFAULT_PASSWORD, UserFactory
from tests.helpers.assertions import assert_problem
from tests.helpers.http import bearer

BASE = "/api/v1/auth"
PASSWORD = "SomePassword1"


@pytest.fixture
def signed_up(client, mailer):
    resp = client.post(f"{BASE}/signup", json={"email": "tv.fan@example.com", "password": PASSWORD})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


class TestSignup:
    def test_returns_user_and_token_pair(self, signed_up, mailer):
        assert signed_up["user"]["email"] == "tv.fan@example.com"
        assert signed_up["user"]["email_verified"] is False
        assert signed_up["user"]["oauth_identities"] == []
        assert "password_hash" not in signed_up["user"]
        assert signed_up["tokens"]["token_type"] == "bearer"
        assert signed_up["tokens"]["short"] != signed_up["tokens"]["long"]
        assert mailer.last_code_for("tv.fan@example.com")

    def test_duplicate_email_is_conflict(self, client, signed_up):
        resp = client.post(f"{BASE}/signup", json={"email": "TV.FAN@example.com", "password": PASSWORD})

        assert_problem(resp, 409, "duplicate_email")

    def test_weak_password_lists_problems(self, client, mailer):
        resp = client.post(f"{BASE}/signup", json={"email": "weak@example.com", "password": "short"})

        body = assert_problem(resp, 422, "validation_error")
        assert body["details"]["errors"]["password"]

    def test_malformed_payload(self, client):
        resp = client.post(f"{BASE}/signup", json={"email": "not-an-email"})

        body = resp.get_json()
        assert resp.status_code == 422
        assert set(body["details"]["errors"]) == {"email", "password"}

    def test_delivery_failure_is_bad_gateway(self, client, mailer):
        mailer.fail_with = "provider down"

        resp = client.post(f"{BASE}/signup", json={"email": "nomail@example.com", "password": PASSWORD})
        body = assert_problem(resp, 502, "delivery_failed")
        assert "provider down" not in body["detail"]

        mailer.fail_with = None
        retry = client.post(f"{BASE}/signup", json={"email": "nomail@example.com", "password": PASSWORD})
        assert retry.status_code == 201


class TestLogin:
    def test_success(self, client, session):
        user = UserFactory(email="login@example.com")
        session.commit()

        resp = client.post(f"{BASE}/login", json={"email": "login@example.com", "password": DEFAULT_PASSWORD})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["id"] == user.id

    @pytest.mark.parametrize(
        "email, password",
        [("login@example.com", "Wrong-Passw0rd"), ("nobody@example.com", DEFAULT_PASSWORD)],
    )
    def test_failures_share_one_answer(self, client, session, email, password):
        UserFactory(email="login@example.com")
        session.commit()

        resp = client.post(f"{BASE}/login", json={"email": email, "password": password})

        body = assert_problem(resp, 401, "authentication_failed")
        assert body["detail"] == "Invalid email or password."


class TestSessionRefresh:
    def test_long_token_via_header(self, client, signed_up):
        resp = client.get(f"{BASE}/session/long", headers=bearer(signed_up["tokens"]["long"]))

        assert resp.status_code == 200
        assert resp.get_json()["data"]["user"]["id"] == signed_up["user"]["id"]

    def test_short_token_via_query_param(self, client, signed_up):
        resp = client.get(f"{BASE}/session/short", query_string={"jwt": signed_up["tokens"]["short"]})
        assert resp.status_code == 200

    def test_wrong_class_is_invalid_token(self, client, signed_up):
        resp = client.get(f"{BASE}/session/long", headers=bearer(signed_up["tokens"]["short"]))

        assert_problem(resp, 401, "invalid_token")

    def test_missing_token(self, client):
        resp = client.get(f"{BASE}/session/short")

        assert_problem(resp, 401, "unauthorized")

    def test_unknown_class_is_not_routed(self, client, signed_up):
        resp = client.get(f"{BASE}/session/medium", headers=bearer(signed_up["tokens"]["short"]))
        assert resp.status_code == 404


class TestTvLogin:
    def test_issue_then_redeem_once(self, client, signed_up):
        issued = client.post(f"{BASE}/tv/codes", headers=bearer(signed_up["tokens"]["short"]))
        assert issued.status_code == 201
        code = issued.get_json()["data"]["code"]
        assert issued.get_json()["data"]["expires_at"]

        redeemed = client.post(f"{BASE}/tv/redeem", json={"code": code})
        assert redeemed.status_code == 200
        assert redeemed.get_json()["data"]["user"]["email"] == "tv.fan@example.com"

        again = client.post(f"{BASE}/tv/redeem", json={"code": code})
        assert_problem(again, 404, "not_found")

    def test_long_token_cannot_issue(self, client, signed_up):
        resp = client.post(f"{BASE}/tv/codes", headers=bearer(signed_up["tokens"]["long"]))
        assert_problem(resp, 401, "invalid_token")

    def test_redeem_requires_code(self, client):
        resp = client.post(f"{BASE}/tv/redeem", json={})
        assert resp.status_code == 422


class TestEmailVerification:
    def test_link_verifies_and_redirects(self, app, client, mailer, signed_up):
        code = mailer.last_code_for("tv.fan@example.com")

        resp = client.get(f"{BASE}/email/verify", query_string={"token": code})

        assert resp.status_code == 302
        assert resp.headers["Location"] == app.config["EMAIL_VERIFIED_REDIRECT_URL"]
        refreshed = client.get(f"{BASE}/session/long", headers=bearer(signed_up["tokens"]["long"]))
        assert refreshed.get_json()["data"]["user"]["email_verified"] is True

    def test_used_link_is_not_found(self, client, mailer, signed_up):
        code = mailer.last_code_for("tv.fan@example.com")
        client.get(f"{BASE}/email/verify", query_string={"token": code})

        resp = client.get(f"{BASE}/email/verify", query_string={"token": code})
        assert resp.status_code == 404

    def test_missing_token(self, client):
        assert client.get(f"{BASE}/email/verify").status_code == 422
