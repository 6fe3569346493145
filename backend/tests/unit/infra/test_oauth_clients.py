"""Unit tests for the Discord and Twitch OAuth HTTP clients."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from authapi.infra.oauth.clients import (
    DiscordOAuthClient,
    TwitchOAuthClient,
    _AuthorizationCodeClient,
)
from authapi.services._shared.errors import OAuthExchangeError


@pytest.fixture
def discord():
    return DiscordOAuthClient(
        client_id="d-client", client_secret="d-secret", redirect_uri="https://app/cb/discord"
    )


@pytest.fixture
def twitch():
    return TwitchOAuthClient(
        client_id="t-client", client_secret="t-secret", redirect_uri="https://app/cb/twitch"
    )


def test_authorize_url_carries_state(discord):
    url = urlparse(discord.authorize_url("state-token"))
    query = parse_qs(url.query)

    assert url.netloc == "discord.com"
    assert query["state"] == ["state-token"]
    assert query["client_id"] == ["d-client"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["https://app/cb/discord"]


@responses.activate
def test_discord_exchange_and_profile(discord):
    responses.add(
        responses.POST, DiscordOAuthClient.TOKEN_URL, json={"access_token": "at-1"}, status=200
    )
    responses.add(
        responses.GET, DiscordOAuthClient.PROFILE_URL, json={"id": "80351110224678912"}, status=200
    )

    token = discord.exchange_code("code-1")
    assert token == "at-1"
    assert discord.fetch_profile_id(token) == "80351110224678912"
    assert responses.calls[1].request.headers["Authorization"] == "Bearer at-1"
    assert "code=code-1" in responses.calls[0].request.body


@responses.activate
def test_twitch_profile_comes_from_first_data_item(twitch):
    responses.add(
        responses.POST, TwitchOAuthClient.TOKEN_URL, json={"access_token": "at-2"}, status=200
    )
    responses.add(
        responses.GET,
        TwitchOAuthClient.PROFILE_URL,
        json={"data": [{"id": "141981764", "login": "someone"}]},
        status=200,
    )

    assert twitch.fetch_profile_id(twitch.exchange_code("code-2")) == "141981764"
    assert responses.calls[1].request.headers["Client-Id"] == "t-client"


@responses.activate
def test_twitch_empty_profile_is_an_error(twitch):
    responses.add(responses.GET, TwitchOAuthClient.PROFILE_URL, json={"data": []}, status=200)

    with pytest.raises(OAuthExchangeError):
        twitch.fetch_profile_id("at")


@responses.activate
def test_rejected_code_raises(discord):
    responses.add(
        responses.POST, DiscordOAuthClient.TOKEN_URL, json={"error": "invalid_grant"}, status=400
    )

    with pytest.raises(OAuthExchangeError):
        discord.exchange_code("bad")


@responses.activate
def test_missing_access_token_raises(discord):
    responses.add(responses.POST, DiscordOAuthClient.TOKEN_URL, json={}, status=200)

    with pytest.raises(OAuthExchangeError):
        discord.exchange_code("code")


@responses.activate
def test_transport_failure_raises(discord):
    responses.add(
        responses.GET,
        DiscordOAuthClient.PROFILE_URL,
        body=requests.ConnectionError("down"),
    )

    with pytest.raises(OAuthExchangeError):
        discord.fetch_profile_id("at")


@responses.activate
def test_malformed_json_raises(discord):
    responses.add(responses.GET, DiscordOAuthClient.PROFILE_URL, body="<html>", status=200)

    with pytest.raises(OAuthExchangeError):
        discord.fetch_profile_id("at")


def test_shared_flow_needs_a_provider_profile_parser():
    with pytest.raises(TypeError):
        _AuthorizationCodeClient(client_id="id", client_secret="s", redirect_uri="https://x")
