from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum, auto
from typing import Protocol


class InsertResult(Enum):
    """Outcome of an insert attempt."""

    OK = auto()
    DUPLICATE = auto()


@dataclass(frozen=True, slots=True)
class SingleUseTokenView:
    """
    Read-model for a single-use token.

    :ivar code: The opaque code handed to the user.
    :ivar user_id: Owner user id.
    :ivar token_type: ``"email-verification"`` or ``"tv-login"``.
    :ivar expires_at: Absolute expiration (UTC).
    """

    code: str
    user_id: int
    token_type: str
    expires_at: datetime


class SingleUseTokenStore(Protocol):
    """
    Storage for single-use codes.

    ``insert`` MUST reject a code that is held by any live token, atomically,
    even when the caller's pre-check said it was free. ``take`` MUST be an
    atomic find-and-delete: of N concurrent takes of one code, exactly one
    gets the view and the rest get ``None``.

    SQL-backed stores join the caller's transaction; key-value stores apply
    writes immediately.
    """

    def code_is_live(self, code: str, *, now: datetime) -> bool:
        """Cheap pre-check: is ``code`` held by any live token of any type?"""

    def insert(
        self, *, code: str, user_id: int, token_type: str, expires_at: datetime
    ) -> InsertResult:
        """Insert a new token unless the code is taken."""

    def take(self, code: str, token_type: str, *, now: datetime) -> SingleUseTokenView | None:
        """Atomically remove and return the live token matching (code, type)."""

    def delete_for_user(self, user_id: int, token_type: str | None = None) -> int:
        """Remove tokens owned by ``user_id`` (optionally one type). :returns: count removed."""

    def purge_expired(self, *, now: datetime) -> int:
        """Remove expired tokens. :returns: count removed."""


class InMemorySingleUseTokenStore(SingleUseTokenStore):
    """
    Process-local store with lock-based atomicity.

    .. note::
       Suitable for tests and single-process development only.
    """

    def __init__(self) -> None:
        self._by_code: dict[str, SingleUseTokenView] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _live(view: SingleUseTokenView, now: datetime) -> bool:
        return view.expires_at.astimezone(UTC) > now.astimezone(UTC)

    def code_is_live(self, code: str, *, now: datetime) -> bool:
        with self._lock:
            view = self._by_code.get(code)
            return view is not None and self._live(view, now)

    def insert(
        self, *, code: str, user_id: int, token_type: str, expires_at: datetime
    ) -> InsertResult:
        with self._lock:
            existing = self._by_code.get(code)
            if existing is not None and self._live(existing, datetime.now(UTC)):
                return InsertResult.DUPLICATE
            self._by_code[code] = SingleUseTokenView(
                code=code, user_id=user_id, token_type=token_type, expires_at=expires_at
            )
            return InsertResult.OK

    def take(self, code: str, token_type: str, *, now: datetime) -> SingleUseTokenView | None:
        with self._lock:
            view = self._by_code.get(code)
            if view is None or view.token_type != token_type:
                return None
            del self._by_code[code]
            return view if self._live(view, now) else None

    def delete_for_user(self, user_id: int, token_type: str | None = None) -> int:
        with self._lock:
            codes = [
                c
                for c, v in self._by_code.items()
                if v.user_id == user_id and token_type in (None, v.token_type)
            ]
            for c in codes:
                del self._by_code[c]
            return len(codes)

    def purge_expired(self, *, now: datetime) -> int:
        with self._lock:
            expired = [c for c, v in self._by_code.items() if not self._live(v, now)]
            for c in expired:
                del self._by_code[c]
            return len(expired)

    def __len__(self) -> int:
        return len(self._by_code)
