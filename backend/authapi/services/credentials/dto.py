"""
DTOs for CredentialService.

Data Transfer Objects isolate the service layer from ORM models so
callers never hold a session-bound ``User``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserCreateIn:
    """
    Input DTO for account creation.

    :param email: Login email (normalized to lowercase).
    :type email: str
    :param password: Raw password to be hashed by the model.
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class UserPatchIn:
    """
    Self-service patch. ``None`` means "leave unchanged".

    :param email: Optional new email (resets verification).
    :type email: str | None
    :param password: Optional new raw password.
    :type password: str | None
    """

    email: str | None = None
    password: str | None = None

    def as_updates(self) -> dict[str, str]:
        return {k: v for k, v in (("email", self.email), ("password", self.password)) if v is not None}


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class OAuthIdentityOut:
    provider: str
    profile_id: str


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Output DTO representing public-safe user data (never the hash).

    :param id: User identifier.
    :param email: Email address.
    :param email_verified: Whether the address was confirmed.
    :param oauth_identities: Linked provider profiles, in link order.
    :param created_at: Creation timestamp.
    :param updated_at: Last update timestamp.
    """

    id: int
    email: str
    email_verified: bool
    oauth_identities: tuple[OAuthIdentityOut, ...]
    created_at: datetime | None
    updated_at: datetime | None
