"""End-to-end tests for OAuth account linking through the stub providers."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from tests.helpers.assertions import assert_problem
from tests.helpers.http import bearer

AUTH = "/api/v1/auth"
OAUTH = "/api/v1/oauth"


def _signup(client, email: str) -> dict:
    resp = client.post(f"{AUTH}/signup", json={"email": email, "password": "SomePassword1"})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def _start(client, provider: str, short_token: str) -> str:
    resp = client.get(f"{OAUTH}/{provider}", query_string={"jwt": short_token})
    assert resp.status_code == 302, resp.get_json()
    return parse_qs(urlparse(resp.headers["Location"]).query)["state"][0]


@pytest.fixture
def me(client, mailer):
    return _signup(client, "linker@example.com")


def test_start_redirects_with_state(client, me):
    resp = client.get(f"{OAUTH}/discord", query_string={"jwt": me["tokens"]["short"]})

    assert resp.status_code == 302
    location = urlparse(resp.headers["Location"])
    assert "discord" in location.path
    assert parse_qs(location.query)["state"][0]


def test_start_accepts_bearer_header(client, me):
    resp = client.get(f"{OAUTH}/twitch", headers=bearer(me["tokens"]["short"]))

    assert resp.status_code == 302
    assert parse_qs(urlparse(resp.headers["Location"]).query)["state"][0]


def test_start_without_token_is_unauthorized(client, me):
    assert_problem(client.get(f"{OAUTH}/discord"), 401, "unauthorized")


def test_callback_links_profile(client, me):
    state = _start(client, "discord", me["tokens"]["short"])

    resp = client.get(
        f"{OAUTH}/discord/callback", query_string={"code": "discord-code-1", "state": state}
    )

    assert resp.status_code == 200
    assert resp.get_json()["data"]["user"]["oauth_identities"] == [
        {"provider": "discord", "profile_id": "d-100"}
    ]


def test_two_providers_in_link_order(client, me):
    for provider, code in (("twitch", "twitch-code-1"), ("discord", "discord-code-1")):
        state = _start(client, provider, me["tokens"]["short"])
        client.get(f"{OAUTH}/{provider}/callback", query_string={"code": code, "state": state})

    refreshed = client.get(f"{AUTH}/session/long", headers=bearer(me["tokens"]["long"]))
    providers = [i["provider"] for i in refreshed.get_json()["data"]["user"]["oauth_identities"]]
    assert providers == ["twitch", "discord"]


def test_replacing_linked_profile_conflicts(client, me):
    state = _start(client, "discord", me["tokens"]["short"])
    client.get(f"{OAUTH}/discord/callback", query_string={"code": "discord-code-1", "state": state})

    resp = client.get(
        f"{OAUTH}/discord/callback", query_string={"code": "discord-code-2", "state": state}
    )
    assert_problem(resp, 409, "oauth_link_conflict")


def test_profile_of_another_user_conflicts(client, me, mailer):
    state = _start(client, "discord", me["tokens"]["short"])
    client.get(f"{OAUTH}/discord/callback", query_string={"code": "discord-code-1", "state": state})
    other = _signup(client, "second@example.com")

    other_state = _start(client, "discord", other["tokens"]["short"])
    resp = client.get(
        f"{OAUTH}/discord/callback", query_string={"code": "discord-code-1", "state": other_state}
    )
    assert_problem(resp, 409, "oauth_link_conflict")


def test_start_requires_short_token(client, me):
    assert client.get(f"{OAUTH}/discord").status_code == 401
    resp = client.get(f"{OAUTH}/discord", query_string={"jwt": me["tokens"]["long"]})
    assert resp.status_code == 401


def test_forged_state_is_rejected(client):
    resp = client.get(
        f"{OAUTH}/discord/callback", query_string={"code": "discord-code-1", "state": "forged"}
    )
    assert_problem(resp, 401, "invalid_token")


def test_provider_failure_is_bad_gateway(client, me):
    state = _start(client, "twitch", me["tokens"]["short"])

    resp = client.get(f"{OAUTH}/twitch/callback", query_string={"code": "bogus", "state": state})
    assert_problem(resp, 502, "oauth_exchange_failed")


def test_unsupported_provider(client, me):
    resp = client.get(f"{OAUTH}/github", query_string={"jwt": me["tokens"]["short"]})
    assert_problem(resp, 422, "validation_error")


def test_callback_without_params(client):
    assert client.get(f"{OAUTH}/discord/callback").status_code == 422
