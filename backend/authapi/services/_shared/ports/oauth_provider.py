from __future__ import annotations

from typing import Protocol
from urllib.parse import urlencode

from authapi.services._shared.errors import OAuthExchangeError


class OAuthProviderClient(Protocol):
    """
    Port for one OAuth provider's HTTP exchanges.

    The core only consumes the resulting ``(provider, profile_id)`` pair.
    """

    provider: str

    def authorize_url(self, state: str) -> str:
        """Build the provider consent URL carrying ``state``."""

    def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for a provider access token.

        :raises OAuthExchangeError: On any provider failure.
        """

    def fetch_profile_id(self, access_token: str) -> str:
        """
        Resolve the provider-side user id for ``access_token``.

        :raises OAuthExchangeError: On any provider failure.
        """


class StubOAuthProviderClient(OAuthProviderClient):
    """Maps authorization codes straight to profile ids (tests)."""

    def __init__(self, provider: str, profiles: dict[str, str] | None = None) -> None:
        self.provider = provider
        self.profiles = dict(profiles or {})

    def authorize_url(self, state: str) -> str:
        return f"https://oauth.invalid/{self.provider}/authorize?{urlencode({'state': state})}"

    def exchange_code(self, code: str) -> str:
        if code not in self.profiles:
            raise OAuthExchangeError(f"{self.provider} rejected the authorization code.")
        return f"access-{code}"

    def fetch_profile_id(self, access_token: str) -> str:
        code = access_token.removeprefix("access-")
        try:
            return self.profiles[code]
        except KeyError as exc:
            raise OAuthExchangeError(f"{self.provider} profile lookup failed.") from exc
