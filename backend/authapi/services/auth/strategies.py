"""
Verification strategies.

Every way of proving who you are is one member of the closed
:class:`Strategy` enum, dispatched through the fixed :data:`STRATEGIES`
table. A strategy is a plain function from credentials to a
:class:`StrategyResult`; it never raises for a failed proof and never mints
tokens. The use case that picks the strategy turns a failure into the
matching service error.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from authapi.models.single_use_token import TokenType
from authapi.repositories.user import UserRepository
from authapi.services._shared.errors import InvalidTokenError
from authapi.services._shared.ports import SessionTokenCodec, TokenClass
from authapi.services.tokens.service import SingleUseTokenService


class Strategy(str, Enum):
    PASSWORD = "password"
    SESSION_HEADER = "session-header"
    SESSION_PARAM = "session-param"
    OAUTH_STATE = "oauth-state"
    TV_CODE = "tv-code"


class FailureKind(str, Enum):
    BAD_CREDENTIALS = "bad-credentials"
    INVALID_TOKEN = "invalid-token"
    CODE_NOT_FOUND = "code-not-found"


@dataclass(frozen=True, slots=True)
class StrategyResult:
    """Either an identity (``user_id``) or a ``failure`` kind, never both."""

    user_id: int | None = None
    failure: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.user_id is not None

    @classmethod
    def success(cls, user_id: int) -> StrategyResult:
        return cls(user_id=user_id)

    @classmethod
    def fail(cls, kind: FailureKind) -> StrategyResult:
        return cls(failure=kind)


@dataclass(frozen=True, slots=True)
class PasswordCredentials:
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class BearerCredentials:
    token: str
    token_class: TokenClass = TokenClass.SHORT


@dataclass(frozen=True, slots=True)
class CodeCredentials:
    code: str


@dataclass(frozen=True, slots=True)
class StrategyContext:
    """Collaborators a strategy may read from. Bound to the caller's unit of work."""

    users: UserRepository
    codec: SessionTokenCodec
    tokens: SingleUseTokenService


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return generate_password_hash("not-a-real-password")


def _password(ctx: StrategyContext, creds: PasswordCredentials) -> StrategyResult:
    email = (creds.email or "").strip()
    user = ctx.users.get_by_email(email) if email else None
    if user is None:
        # Same hashing work whether or not the account exists.
        check_password_hash(_dummy_hash(), creds.password or "")
        return StrategyResult.fail(FailureKind.BAD_CREDENTIALS)
    if not user.verify_password(creds.password):
        return StrategyResult.fail(FailureKind.BAD_CREDENTIALS)
    return StrategyResult.success(user.id)


def _bearer(ctx: StrategyContext, creds: BearerCredentials) -> StrategyResult:
    try:
        claims = ctx.codec.verify(creds.token_class, creds.token or "")
    except InvalidTokenError:
        return StrategyResult.fail(FailureKind.INVALID_TOKEN)
    return StrategyResult.success(claims.user_id)


def _oauth_state(ctx: StrategyContext, creds: BearerCredentials) -> StrategyResult:
    # The OAuth round-trip state is a short session token, nothing else.
    return _bearer(ctx, BearerCredentials(token=creds.token, token_class=TokenClass.SHORT))


def _tv_code(ctx: StrategyContext, creds: CodeCredentials) -> StrategyResult:
    view = ctx.tokens.try_redeem(creds.code, TokenType.TV_LOGIN)
    if view is None:
        return StrategyResult.fail(FailureKind.CODE_NOT_FOUND)
    return StrategyResult.success(view.user_id)


STRATEGIES: dict[Strategy, Callable[[StrategyContext, Any], StrategyResult]] = {
    Strategy.PASSWORD: _password,
    Strategy.SESSION_HEADER: _bearer,
    Strategy.SESSION_PARAM: _bearer,
    Strategy.OAUTH_STATE: _oauth_state,
    Strategy.TV_CODE: _tv_code,
}


def authenticate(strategy: Strategy, ctx: StrategyContext, credentials: Any) -> StrategyResult:
    """Run the verification function registered for ``strategy``."""
    return STRATEGIES[Strategy(strategy)](ctx, credentials)
