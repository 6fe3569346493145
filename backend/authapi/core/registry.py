"""Per-application wiring of ports to adapters.

The registry is built once in the app factory from ``app.config`` and kept in
``app.extensions["authapi"]``. Request handlers obtain services from it
instead of reaching for module-level singletons, so tests can swap any
adapter by building their own registry.
"""

from __future__ import annotations

import atexit
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from flask import Flask, current_app

from authapi.core.extensions import get_redis
from authapi.infra.jwt.session_codec import JWTSessionCodec
from authapi.infra.mail.postmark_email_sender import PostmarkEmailSender
from authapi.infra.oauth.clients import DiscordOAuthClient, TwitchOAuthClient
from authapi.infra.redis.redis_single_use_token_store import RedisSingleUseTokenStore
from authapi.infra.sql.single_use_token_store import SQLSingleUseTokenStore
from authapi.models.single_use_token import TokenType
from authapi.services._shared.ports import (
    EmailSender,
    InMemorySingleUseTokenStore,
    OAuthProviderClient,
    RecordingEmailSender,
    SessionTokenCodec,
    SingleUseTokenStore,
)
from authapi.services.auth.service import AuthService
from authapi.services.credentials.policy import PasswordPolicy
from authapi.services.credentials.service import CredentialService
from authapi.services.tokens.service import SingleUseTokenService

log = logging.getLogger(__name__)

EXTENSION_KEY = "authapi"


@dataclass(slots=True)
class ServiceRegistry:
    """
    Long-lived collaborators shared by every request of one application.

    :ivar codec: Session token codec.
    :ivar token_store: Single-use token storage backend.
    :ivar email_sender: Verification email collaborator.
    :ivar oauth_clients: Provider name to HTTP client (only configured ones).
    :ivar policy: Password strength rules.
    :ivar ttls: Single-use token lifetime per type.
    """

    codec: SessionTokenCodec
    token_store: SingleUseTokenStore
    email_sender: EmailSender
    oauth_clients: dict[str, OAuthProviderClient] = field(default_factory=dict)
    policy: PasswordPolicy = field(default_factory=PasswordPolicy)
    ttls: dict[TokenType, timedelta] = field(default_factory=dict)

    # -------------------- construction --------------------

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> ServiceRegistry:
        """Build adapters selected by ``TOKEN_STORE_BACKEND`` and ``MAIL_BACKEND``."""
        codec = JWTSessionCodec(
            short_secret=config["SHORT_TOKEN_SECRET"],
            long_secret=config["LONG_TOKEN_SECRET"],
            short_ttl=timedelta(seconds=int(config["SHORT_TOKEN_TTL_SECONDS"])),
            long_ttl=timedelta(seconds=int(config["LONG_TOKEN_TTL_SECONDS"])),
        )
        return cls(
            codec=codec,
            token_store=_build_token_store(config),
            email_sender=_build_email_sender(config),
            oauth_clients=_build_oauth_clients(config),
            policy=PasswordPolicy.from_config(config),
            ttls={
                TokenType.EMAIL_VERIFICATION: timedelta(
                    seconds=int(config["EMAIL_VERIFICATION_TTL_SECONDS"])
                ),
                TokenType.TV_LOGIN: timedelta(seconds=int(config["TV_CODE_TTL_SECONDS"])),
            },
        )

    # -------------------- services --------------------

    def token_service(self) -> SingleUseTokenService:
        return SingleUseTokenService(self.token_store, ttls=self.ttls)

    def credential_service(self) -> CredentialService:
        return CredentialService(
            codec=self.codec,
            tokens=self.token_service(),
            mailer=self.email_sender,
            policy=self.policy,
        )

    def auth_service(self) -> AuthService:
        credentials = self.credential_service()
        return AuthService(
            codec=self.codec,
            tokens=credentials.tokens,
            credentials=credentials,
            oauth_clients=self.oauth_clients,
        )

    # -------------------- lifecycle --------------------

    def close(self) -> None:
        """Release HTTP sessions held by outbound adapters."""
        for resource in (self.email_sender, *self.oauth_clients.values()):
            closer = getattr(resource, "close", None)
            if callable(closer):
                closer()


def _build_token_store(config: Mapping[str, Any]) -> SingleUseTokenStore:
    backend = str(config.get("TOKEN_STORE_BACKEND", "sql")).lower()
    if backend == "sql":
        return SQLSingleUseTokenStore()
    if backend == "redis":
        return RedisSingleUseTokenStore(r=get_redis())
    if backend == "memory":
        return InMemorySingleUseTokenStore()
    raise RuntimeError(f"Unknown TOKEN_STORE_BACKEND: {backend!r}")


def _build_email_sender(config: Mapping[str, Any]) -> EmailSender:
    backend = str(config.get("MAIL_BACKEND", "postmark")).lower()
    if backend == "memory":
        return RecordingEmailSender()
    if backend == "postmark":
        return PostmarkEmailSender(
            server_token=config.get("POSTMARK_SERVER_TOKEN", ""),
            sender=config["MAIL_FROM"],
            template_alias=config.get("POSTMARK_TEMPLATE_ALIAS", "signup-confirmation"),
            timeout=float(config.get("MAIL_TIMEOUT_SECONDS", 10)),
        )
    raise RuntimeError(f"Unknown MAIL_BACKEND: {backend!r}")


def _build_oauth_clients(config: Mapping[str, Any]) -> dict[str, OAuthProviderClient]:
    """Instantiate clients for providers that have credentials configured."""
    timeout = float(config.get("OAUTH_HTTP_TIMEOUT_SECONDS", 10))
    clients: dict[str, OAuthProviderClient] = {}
    for prefix, client_cls in (("DISCORD", DiscordOAuthClient), ("TWITCH", TwitchOAuthClient)):
        client_id = config.get(f"{prefix}_CLIENT_ID")
        if not client_id:
            continue
        clients[client_cls.provider] = client_cls(
            client_id=client_id,
            client_secret=config.get(f"{prefix}_CLIENT_SECRET", ""),
            redirect_uri=config.get(f"{prefix}_REDIRECT_URI", ""),
            timeout=timeout,
        )
    return clients


def init_app(app: Flask, registry: ServiceRegistry | None = None) -> ServiceRegistry:
    """Attach ``registry`` (or one built from ``app.config``) to ``app``.

    The registry is closed when the interpreter (gunicorn worker) exits.
    """
    registry = registry or ServiceRegistry.from_config(app.config)
    app.extensions[EXTENSION_KEY] = registry
    atexit.register(registry.close)
    log.info(
        "service registry ready",
        extra={"event": "app.registry", "provider": ",".join(sorted(registry.oauth_clients))},
    )
    return registry


def get_registry() -> ServiceRegistry:
    """Return the registry of the current application."""
    registry = current_app.extensions.get(EXTENSION_KEY)
    if registry is None:
        raise RuntimeError("Service registry is not initialized. Call init_app() first.")
    return registry
