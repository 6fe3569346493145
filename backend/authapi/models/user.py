"""User model: the credential record behind every session."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from werkzeug.security import check_password_hash, generate_password_hash

from authapi.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

if TYPE_CHECKING:
    from .oauth_identity import OAuthIdentity


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account identity with a salted password hash and linked OAuth identities.

    Fields
    ------
    email : str
        Login email. Stored normalized (lowercase, trimmed). Unique.
    password_hash : str
        Werkzeug salted hash (write-only setter via ``password``).
    email_verified : bool
        Flipped to ``True`` by redeeming an email-verification code.
    oauth_identities : list[OAuthIdentity]
        Linked provider profiles, in link order.
    version : int
        Optimistic concurrency counter. A flush against a stale version
        raises :class:`sqlalchemy.orm.exc.StaleDataError`.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    email_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    oauth_identities: Mapped[list[OAuthIdentity]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="OAuthIdentity.id",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        Index("ix_users_email", "email"),
    )
    __mapper_args__ = {"version_id_col": version}

    # -------------------- Password API --------------------
    @property
    def password(self) -> Any:  # pragma: no cover - explicit write-only contract
        """
        Disallow reading passwords.

        :raises AttributeError: Always, to ensure password is write-only.
        """
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        """
        Hash and set the password.

        :param raw: Plain text password to hash.
        :type raw: str
        """
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """
        Verify a password against the stored hash.

        :param raw: Plain text password candidate.
        :returns: ``True`` if it matches; otherwise ``False``.
        """
        if not self.password_hash or not isinstance(raw, str):
            return False
        return bool(check_password_hash(self.password_hash, raw))

    # -------------------- OAuth helpers --------------------
    def identity_for(self, provider: str) -> OAuthIdentity | None:
        """Return the linked identity for ``provider`` if any."""
        for identity in self.oauth_identities:
            if identity.provider == provider:
                return identity
        return None

    # -------------------- Validators --------------------
    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        """
        Normalize email (lowercase, trimmed).

        Format validation happens in the credential service before the value
        reaches the model; this is the last line of defence.

        :raises ValueError: If email is missing or obviously malformed.
        """
        if not value or not isinstance(value, str):
            raise ValueError("Email is required.")
        v = value.strip().lower()
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Email format looks invalid.")
        return v
