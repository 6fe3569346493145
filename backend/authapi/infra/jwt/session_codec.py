# authapi/infra/jwt/session_codec.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import jwt

from authapi.services._shared.errors import InvalidTokenError
from authapi.services._shared.ports import (
    SessionClaims,
    SessionSubject,
    SessionTokenCodec,
    TokenClass,
    TokenPair,
)

log = logging.getLogger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "sub", "cls"]


@dataclass(slots=True)
class JWTSessionCodec(SessionTokenCodec):
    """
    HS256 session tokens via PyJWT, one signing secret per token class.

    A short token can never verify as long (or vice versa): the secrets
    differ, and the ``cls`` claim is checked after the signature.

    :param short_secret: HMAC secret for ``TokenClass.SHORT``.
    :param long_secret: HMAC secret for ``TokenClass.LONG``.
    :param short_ttl: Lifetime of short tokens (default 1 hour).
    :param long_ttl: Lifetime of long tokens (default 30 days).
    :raises ValueError: If a secret is empty or both secrets are equal.
    """

    short_secret: str = field(repr=False)
    long_secret: str = field(repr=False)
    short_ttl: timedelta = timedelta(hours=1)
    long_ttl: timedelta = timedelta(days=30)

    def __post_init__(self) -> None:
        if not self.short_secret or not self.long_secret:
            raise ValueError("Both session token secrets must be configured.")
        if self.short_secret == self.long_secret:
            raise ValueError("Short and long session token secrets must differ.")

    # -------------------- helpers --------------------

    def _secret(self, token_class: TokenClass) -> str:
        return self.short_secret if token_class is TokenClass.SHORT else self.long_secret

    def _ttl(self, token_class: TokenClass) -> timedelta:
        return self.short_ttl if token_class is TokenClass.SHORT else self.long_ttl

    # -------------------- API ------------------------

    def mint(self, token_class: TokenClass, subject: SessionSubject) -> str:
        now = datetime.now(UTC)
        payload: dict[str, Any] = {
            "sub": str(subject.user_id),
            "email": subject.email,
            "email_verified": bool(subject.email_verified),
            "cls": token_class.value,
            "iat": now,
            "exp": now + self._ttl(token_class),
            "jti": uuid4().hex,
        }
        return jwt.encode(payload, self._secret(token_class), algorithm=ALGORITHM)

    def verify(self, token_class: TokenClass, token: str) -> SessionClaims:
        if not token or not isinstance(token, str):
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret(token_class),
                algorithms=[ALGORITHM],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError:
            log.debug("session token rejected: expired", extra={"event": "token.expired"})
            raise InvalidTokenError() from None
        except jwt.PyJWTError as exc:
            log.debug(
                "session token rejected: %s",
                type(exc).__name__,
                extra={"event": "token.invalid"},
            )
            raise InvalidTokenError() from None

        if payload.get("cls") != token_class.value:
            log.debug("session token rejected: class mismatch", extra={"event": "token.invalid"})
            raise InvalidTokenError()
        try:
            subject = SessionSubject(
                user_id=int(payload["sub"]),
                email=str(payload.get("email", "")),
                email_verified=bool(payload.get("email_verified", False)),
            )
        except (TypeError, ValueError):
            log.debug("session token rejected: bad subject", extra={"event": "token.invalid"})
            raise InvalidTokenError() from None

        return SessionClaims(
            subject=subject,
            token_class=token_class,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        )

    def mint_pair(self, subject: SessionSubject) -> TokenPair:
        return TokenPair(
            short=self.mint(TokenClass.SHORT, subject),
            long=self.mint(TokenClass.LONG, subject),
        )
