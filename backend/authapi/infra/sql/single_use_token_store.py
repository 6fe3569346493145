# authapi/infra/sql/single_use_token_store.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from authapi.models.base import as_utc
from authapi.models.single_use_token import SingleUseToken
from authapi.repositories.single_use_token import SingleUseTokenRepository
from authapi.services._shared.errors import violates
from authapi.services._shared.ports import (
    InsertResult,
    SingleUseTokenStore,
    SingleUseTokenView,
)


@dataclass(slots=True)
class SQLSingleUseTokenStore(SingleUseTokenStore):
    """
    Relational single-use token store.

    Works inside the caller's transaction (the Flask-scoped session unless a
    session is injected) and never commits. Duplicate codes are rejected by
    ``uq_single_use_tokens_code`` inside a SAVEPOINT so the outer transaction
    survives the collision. Redemption deletes by primary key and only
    succeeds when exactly one row was removed.

    :param session: Optional explicit session (defaults to ``db.session``).
    """

    session: Session | None = None

    def _repo(self) -> SingleUseTokenRepository:
        return SingleUseTokenRepository(session=self.session)

    def code_is_live(self, code: str, *, now: datetime) -> bool:
        return self._repo().code_is_live(code, now)

    def insert(
        self, *, code: str, user_id: int, token_type: str, expires_at: datetime
    ) -> InsertResult:
        repo = self._repo()
        try:
            with repo.session.begin_nested():
                repo.add(
                    SingleUseToken(
                        code=code, user_id=user_id, token_type=token_type, expires_at=expires_at
                    )
                )
        except IntegrityError as exc:
            if violates(exc, "uq_single_use_tokens_code", "single_use_tokens.code"):
                return InsertResult.DUPLICATE
            raise
        return InsertResult.OK

    def take(self, code: str, token_type: str, *, now: datetime) -> SingleUseTokenView | None:
        repo = self._repo()
        row = repo.get_live(code, token_type, now)
        if row is None:
            return None
        view = SingleUseTokenView(
            code=row.code,
            user_id=row.user_id,
            token_type=row.token_type,
            expires_at=as_utc(row.expires_at),
        )
        repo.session.expunge(row)
        if repo.delete_by_id(row.id) != 1:
            return None
        return view

    def delete_for_user(self, user_id: int, token_type: str | None = None) -> int:
        return self._repo().delete_for_user(user_id, token_type)

    def purge_expired(self, *, now: datetime) -> int:
        return self._repo().delete_expired(now)
