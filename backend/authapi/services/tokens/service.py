"""
SingleUseTokenService
=====================

Issues and redeems one-time codes (email verification, TV login).

- Codes are drawn from :mod:`secrets`; the alphabet and length depend on the
  token type.
- Issuance pre-checks the candidate against live tokens of *any* type, then
  relies on the store to reject a duplicate atomically; either way a fresh
  candidate is drawn.
- Redemption is a single atomic take in the store.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta

from authapi.models.single_use_token import TokenType
from authapi.services._shared.errors import TokenIssueError, TokenNotFoundError
from authapi.services._shared.ports import (
    InsertResult,
    SingleUseTokenStore,
    SingleUseTokenView,
)

log = logging.getLogger(__name__)

EMAIL_CODE_BYTES = 16
# No 0/O, 1/I/L: the code is read off one screen and typed on another.
TV_ALPHABET = "23456789ABCDEFGHJKMNPQRSTUVWXYZ"
TV_CODE_LENGTH = 8

DEFAULT_TTLS: Mapping[TokenType, timedelta] = {
    TokenType.EMAIL_VERIFICATION: timedelta(hours=24),
    TokenType.TV_LOGIN: timedelta(minutes=10),
}


def generate_code(token_type: TokenType) -> str:
    """Draw a random candidate code for ``token_type``."""
    if token_type is TokenType.TV_LOGIN:
        return "".join(secrets.choice(TV_ALPHABET) for _ in range(TV_CODE_LENGTH))
    return secrets.token_hex(EMAIL_CODE_BYTES)


def normalize_code(code: str, token_type: TokenType) -> str:
    """Undo harmless human input variations (TV codes are case-insensitive)."""
    code = (code or "").strip()
    return code.upper() if token_type is TokenType.TV_LOGIN else code


class SingleUseTokenService:
    """
    Token Generator on top of a :class:`SingleUseTokenStore`.

    :param store: Storage adapter (SQL, Redis or in-memory).
    :param ttls: Lifetime per token type.
    :param generator: Candidate source, injectable for collision tests.
    :param max_attempts: Upper bound on candidates drawn per issuance.
    """

    def __init__(
        self,
        store: SingleUseTokenStore,
        *,
        ttls: Mapping[TokenType, timedelta] | None = None,
        generator: Callable[[TokenType], str] = generate_code,
        max_attempts: int = 32,
    ) -> None:
        self.store = store
        self.ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self.generator = generator
        self.max_attempts = max_attempts

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)

    def issue(self, user_id: int, token_type: TokenType) -> SingleUseTokenView:
        """
        Create a token with a code no live token currently holds.

        :raises TokenIssueError: If ``max_attempts`` candidates all collided.
        """
        token_type = TokenType(token_type)
        expires_at = self.now_utc() + self.ttls[token_type]
        for attempt in range(1, self.max_attempts + 1):
            code = self.generator(token_type)
            if self.store.code_is_live(code, now=self.now_utc()):
                log.debug("single-use code collided at pre-check (attempt %s)", attempt)
                continue
            result = self.store.insert(
                code=code,
                user_id=user_id,
                token_type=token_type.value,
                expires_at=expires_at,
            )
            if result is InsertResult.DUPLICATE:
                log.debug("single-use code rejected by store (attempt %s)", attempt)
                continue
            log.info(
                "single-use token issued",
                extra={"event": "token.issued", "user_id": user_id, "token_type": token_type.value},
            )
            return SingleUseTokenView(
                code=code, user_id=user_id, token_type=token_type.value, expires_at=expires_at
            )
        log.error("no free single-use code after %s attempts", self.max_attempts)
        raise TokenIssueError("Could not allocate a unique code.")

    def try_redeem(self, code: str, token_type: TokenType) -> SingleUseTokenView | None:
        """Consume the token, or return ``None`` if absent/used/expired/wrong type."""
        token_type = TokenType(token_type)
        code = normalize_code(code, token_type)
        if not code:
            return None
        view = self.store.take(code, token_type.value, now=self.now_utc())
        if view is not None:
            log.info(
                "single-use token redeemed",
                extra={
                    "event": "token.redeemed",
                    "user_id": view.user_id,
                    "token_type": token_type.value,
                },
            )
        return view

    def redeem(self, code: str, token_type: TokenType) -> SingleUseTokenView:
        """
        Consume the token.

        :raises TokenNotFoundError: When the code is absent, used, expired or
            of another type. The causes are indistinguishable.
        """
        view = self.try_redeem(code, token_type)
        if view is None:
            raise TokenNotFoundError()
        return view

    def discard_for_user(self, user_id: int, token_type: TokenType | None = None) -> int:
        """Drop live tokens of ``user_id`` (all types unless ``token_type`` is given)."""
        return self.store.delete_for_user(
            user_id, TokenType(token_type).value if token_type is not None else None
        )

    def purge_expired(self) -> int:
        removed = self.store.purge_expired(now=self.now_utc())
        log.info("expired single-use tokens purged", extra={"event": "token.purged"})
        return removed
