"""Linked OAuth provider profiles owned by a :class:`User`."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from authapi.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User


class OAuthProvider(str, Enum):
    """Closed set of supported OAuth providers."""

    DISCORD = "discord"
    TWITCH = "twitch"


class OAuthIdentity(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    A provider-side profile id linked to exactly one user.

    Not addressable on its own: rows are created and removed through
    ``User.oauth_identities`` only.

    Constraints
    -----------
    * ``uq_oauth_identities_user_provider``: one identity per provider per user.
    * ``uq_oauth_identities_provider_profile``: a provider profile belongs to
      at most one user.
    """

    __tablename__ = "oauth_identities"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    provider: Mapped[str] = mapped_column(String(20), nullable=False)
    profile_id: Mapped[str] = mapped_column(String(100), nullable=False)

    user: Mapped[User] = relationship(back_populates="oauth_identities")

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_oauth_identities_user_provider"),
        UniqueConstraint("provider", "profile_id", name="uq_oauth_identities_provider_profile"),
        Index("ix_oauth_identities_user_id", "user_id"),
    )

    @validates("provider")
    def _validate_provider(self, key: str, value: str | OAuthProvider) -> str:
        """Accept enum members or their string values; reject anything else."""
        return OAuthProvider(value).value

    @validates("profile_id")
    def _validate_profile_id(self, key: str, value: str) -> str:
        v = str(value).strip() if value is not None else ""
        if not v:
            raise ValueError("profile_id is required.")
        return v
