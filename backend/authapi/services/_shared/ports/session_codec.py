from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Protocol

from authapi.services._shared.errors import InvalidTokenError


class TokenClass(str, Enum):
    """Session token classes. Each class is signed with its own secret."""

    SHORT = "short"
    LONG = "long"


@dataclass(frozen=True, slots=True)
class SessionSubject:
    """
    Minimal user claims embedded in a session token.

    :ivar user_id: Owner user id.
    :ivar email: Email at mint time.
    :ivar email_verified: Verification flag at mint time.
    """

    user_id: int
    email: str
    email_verified: bool


@dataclass(frozen=True, slots=True)
class SessionClaims:
    """
    Verified claims recovered from a session token.

    :ivar subject: The user claims.
    :ivar token_class: Class the token was minted (and verified) as.
    :ivar issued_at: ``iat`` (UTC).
    :ivar expires_at: ``exp`` (UTC).
    """

    subject: SessionSubject
    token_class: TokenClass
    issued_at: datetime
    expires_at: datetime

    @property
    def user_id(self) -> int:
        return self.subject.user_id


@dataclass(frozen=True, slots=True)
class TokenPair:
    """A fresh short-lived plus long-lived token pair."""

    short: str
    long: str


class SessionTokenCodec(Protocol):
    """Port for minting and verifying session tokens."""

    def mint(self, token_class: TokenClass, subject: SessionSubject) -> str:
        """Sign ``subject`` plus expiry and class discriminator."""

    def verify(self, token_class: TokenClass, token: str) -> SessionClaims:
        """
        Verify signature, expiry and class.

        :raises InvalidTokenError: For every failure cause, uniformly.
        """

    def mint_pair(self, subject: SessionSubject) -> TokenPair:
        """Mint a short and a long token for the same subject."""


class StubSessionCodec(SessionTokenCodec):
    """
    Deterministic, unsigned codec used in unit tests.

    Tokens look like ``"<class>.<user_id>.<seq>"``; ``revoke`` makes a token
    fail verification to simulate tampering or expiry.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=1)) -> None:
        self._seq = 0
        self._ttl = ttl
        self._issued: dict[str, SessionClaims] = {}
        self._revoked: set[str] = set()

    def mint(self, token_class: TokenClass, subject: SessionSubject) -> str:
        self._seq += 1
        token = f"{token_class.value}.{subject.user_id}.{self._seq}"
        now = datetime.now(UTC)
        self._issued[token] = SessionClaims(
            subject=subject,
            token_class=token_class,
            issued_at=now,
            expires_at=now + self._ttl,
        )
        return token

    def verify(self, token_class: TokenClass, token: str) -> SessionClaims:
        claims = self._issued.get(token)
        if claims is None or token in self._revoked or claims.token_class != token_class:
            raise InvalidTokenError()
        return claims

    def mint_pair(self, subject: SessionSubject) -> TokenPair:
        return TokenPair(
            short=self.mint(TokenClass.SHORT, subject),
            long=self.mint(TokenClass.LONG, subject),
        )

    def revoke(self, token: str) -> None:
        self._revoked.add(token)
