"""Single-use codes (email verification, TV login) for the SQL token store."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from authapi.core.extensions import db

from .base import PKMixin, ReprMixin, utcnow


class TokenType(str, Enum):
    """Closed set of single-use token purposes."""

    EMAIL_VERIFICATION = "email-verification"
    TV_LOGIN = "tv-login"


class SingleUseToken(PKMixin, ReprMixin, db.Model):
    """
    A one-time opaque code owned by a user.

    ``code`` is unique across *all* live tokens regardless of type. A row is
    consumed by deleting it; an expired row is indistinguishable from a
    missing one and is removed by ``flask tokens purge``.
    """

    __tablename__ = "single_use_tokens"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    token_type: Mapped[str] = mapped_column(String(32), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("code", name="uq_single_use_tokens_code"),
        Index("ix_single_use_tokens_user_id", "user_id"),
        Index("ix_single_use_tokens_expires_at", "expires_at"),
    )
