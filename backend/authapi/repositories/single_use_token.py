"""Persistence helpers for :class:`SingleUseToken` rows."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, select

from authapi.models.single_use_token import SingleUseToken
from authapi.repositories.base import BaseRepository


class SingleUseTokenRepository(BaseRepository[SingleUseToken]):
    """Persistence-only repository for single-use codes.

    "Live" means ``expires_at > now``; expired rows are treated as absent by
    every lookup here.
    """

    model = SingleUseToken

    def get_live(self, code: str, token_type: str, now: datetime) -> SingleUseToken | None:
        stmt = select(SingleUseToken).where(
            SingleUseToken.code == code,
            SingleUseToken.token_type == token_type,
            SingleUseToken.expires_at > now,
        )
        return cast(SingleUseToken | None, self.session.execute(stmt).scalars().first())

    def code_is_live(self, code: str, now: datetime) -> bool:
        """Return ``True`` if any live token, of any type, holds ``code``."""
        stmt = select(SingleUseToken.id).where(
            SingleUseToken.code == code, SingleUseToken.expires_at > now
        )
        return self.session.execute(stmt).first() is not None

    def delete_by_id(self, token_id: int) -> int:
        """Delete a row by id with a bulk ``DELETE`` and return the rowcount.

        A concurrent consumer that deleted the row first makes this return 0,
        which is how redemption detects it lost the race.
        """
        result = self.session.execute(
            delete(SingleUseToken)
            .where(SingleUseToken.id == token_id)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def delete_expired(self, now: datetime) -> int:
        result = self.session.execute(
            delete(SingleUseToken)
            .where(SingleUseToken.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)

    def delete_for_user(self, user_id: int, token_type: str | None = None) -> int:
        stmt = delete(SingleUseToken).where(SingleUseToken.user_id == user_id)
        if token_type is not None:
            stmt = stmt.where(SingleUseToken.token_type == token_type)
        result = self.session.execute(stmt.execution_options(synchronize_session=False))
        return int(result.rowcount or 0)
