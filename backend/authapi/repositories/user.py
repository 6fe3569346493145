"""User repository for persistence and credential lookups."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from authapi.models.oauth_identity import OAuthIdentity
from authapi.models.user import User
from authapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User` and its linked identities.

    It NEVER mints or verifies session tokens.
    """

    model = User

    def _updatable_fields(self):
        """Self-service fields. ``password`` goes through the hashing setter."""
        return {"email", "password", "email_verified"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by exact (normalised) email.

        :param email: Email address to normalise and search.
        :returns: User instance or ``None`` when not found.
        """
        stmt = select(User).where(User.email == email.lower().strip())
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str, *, exclude_id: int | None = None) -> bool:
        """Return ``True`` when another user already holds ``email``.

        :param exclude_id: Ignore this user id (used when re-validating updates).
        """
        stmt = select(User.id).where(User.email == email.lower().strip())
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        return bool(self.session.execute(stmt).first())

    def get_by_oauth_profile(self, provider: str, profile_id: str) -> User | None:
        """Return the user who linked ``profile_id`` under ``provider``, if any."""
        stmt = (
            select(User)
            .join(OAuthIdentity, OAuthIdentity.user_id == User.id)
            .where(OAuthIdentity.provider == provider, OAuthIdentity.profile_id == profile_id)
        )
        return cast(User | None, self.session.execute(stmt).scalars().first())

    # ---------------------------- Identity ops ----------------------------

    def link_identity(self, user: User, provider: str, profile_id: str) -> OAuthIdentity:
        """Append a new linked identity to ``user`` and flush."""
        identity = OAuthIdentity(provider=provider, profile_id=profile_id)
        user.oauth_identities.append(identity)
        self.flush()
        return identity
