"""
authapi.services._shared.ports
==============================

Hexagonal interfaces the service layer depends on.

Modules
-------
- :mod:`session_codec`:
    :class:`~.SessionTokenCodec` mints and verifies short/long session tokens.
- :mod:`single_use_token_store`:
    :class:`~.SingleUseTokenStore` persists one-time codes with an atomic take.
- :mod:`email_sender`:
    :class:`~.EmailSender` delivers verification emails.
- :mod:`oauth_provider`:
    :class:`~.OAuthProviderClient` wraps one provider's code exchange.

Concrete adapters live under ``authapi.infra``; in-memory doubles live next
to each port.
"""

from __future__ import annotations

from .email_sender import EmailSender, RecordingEmailSender, SentEmail
from .oauth_provider import OAuthProviderClient, StubOAuthProviderClient
from .session_codec import (
    SessionClaims,
    SessionSubject,
    SessionTokenCodec,
    StubSessionCodec,
    TokenClass,
    TokenPair,
)
from .single_use_token_store import (
    InMemorySingleUseTokenStore,
    InsertResult,
    SingleUseTokenStore,
    SingleUseTokenView,
)

__all__ = [
    "EmailSender",
    "RecordingEmailSender",
    "SentEmail",
    "OAuthProviderClient",
    "StubOAuthProviderClient",
    "SessionClaims",
    "SessionSubject",
    "SessionTokenCodec",
    "StubSessionCodec",
    "TokenClass",
    "TokenPair",
    "InMemorySingleUseTokenStore",
    "InsertResult",
    "SingleUseTokenStore",
    "SingleUseTokenView",
]
