# authapi/infra/oauth/clients.py
"""HTTP clients for the Discord and Twitch authorization-code flows."""

from __future__ import annotations

import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar
from urllib.parse import urlencode

import requests

from authapi.services._shared.errors import OAuthExchangeError
from authapi.services._shared.ports import OAuthProviderClient

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _AuthorizationCodeClient(OAuthProviderClient):
    """
    Shared authorization-code flow over ``requests``.

    Subclasses set the endpoints, scope and :meth:`_profile_id_from`.
    """

    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str
    timeout: float = 10.0
    http: requests.Session = field(default_factory=requests.Session, repr=False)

    provider: ClassVar[str]
    AUTHORIZE_URL: ClassVar[str]
    TOKEN_URL: ClassVar[str]
    PROFILE_URL: ClassVar[str]
    SCOPE: ClassVar[str]

    def authorize_url(self, state: str) -> str:
        query = {
            "response_type": "code",
            "scope": self.SCOPE,
            "client_id": self.client_id,
            "state": state,
            "redirect_uri": self.redirect_uri,
        }
        return f"{self.AUTHORIZE_URL}?{urlencode(query)}"

    def exchange_code(self, code: str) -> str:
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }
        payload = self._call("POST", self.TOKEN_URL, data=data)
        token = payload.get("access_token")
        if not token:
            raise OAuthExchangeError(f"{self.provider} returned no access token.")
        return str(token)

    def fetch_profile_id(self, access_token: str) -> str:
        headers = {"Authorization": f"Bearer {access_token}", "Client-Id": self.client_id}
        payload = self._call("GET", self.PROFILE_URL, headers=headers)
        profile_id = self._profile_id_from(payload)
        if not profile_id:
            raise OAuthExchangeError(f"{self.provider} returned no profile id.")
        return profile_id

    @abstractmethod
    def _profile_id_from(self, payload: dict[str, Any]) -> str | None:
        """Pull the provider user id out of the profile response."""

    def _call(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            log.warning(
                "oauth transport failure: %s", type(exc).__name__, extra={"provider": self.provider}
            )
            raise OAuthExchangeError(f"{self.provider} is unreachable.") from exc
        if not resp.ok:
            log.warning(
                "oauth provider error: status=%s",
                resp.status_code,
                extra={"provider": self.provider},
            )
            raise OAuthExchangeError(f"{self.provider} rejected the request.")
        try:
            return resp.json()
        except ValueError as exc:
            raise OAuthExchangeError(f"{self.provider} returned malformed JSON.") from exc

    def close(self) -> None:
        self.http.close()


@dataclass(slots=True)
class DiscordOAuthClient(_AuthorizationCodeClient):
    provider: ClassVar[str] = "discord"
    AUTHORIZE_URL: ClassVar[str] = "https://discord.com/oauth2/authorize"
    TOKEN_URL: ClassVar[str] = "https://discord.com/api/oauth2/token"
    PROFILE_URL: ClassVar[str] = "https://discord.com/api/users/@me"
    SCOPE: ClassVar[str] = "identify email"

    def _profile_id_from(self, payload: dict[str, Any]) -> str | None:
        value = payload.get("id")
        return str(value) if value else None


@dataclass(slots=True)
class TwitchOAuthClient(_AuthorizationCodeClient):
    provider: ClassVar[str] = "twitch"
    AUTHORIZE_URL: ClassVar[str] = "https://id.twitch.tv/oauth2/authorize"
    TOKEN_URL: ClassVar[str] = "https://id.twitch.tv/oauth2/token"
    PROFILE_URL: ClassVar[str] = "https://api.twitch.tv/helix/users"
    SCOPE: ClassVar[str] = "user:read:email"

    def _profile_id_from(self, payload: dict[str, Any]) -> str | None:
        data = payload.get("data") or []
        if not data or not data[0].get("id"):
            return None
        return str(data[0]["id"])
