# authapi/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from authapi.services._shared.ports import TokenPair
from authapi.services.credentials.dto import UserPublicOut

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SignupIn:
    """
    Input DTO for signup.

    :param email: Login email.
    :type email: str
    :param password: Raw password (checked against the policy, then hashed).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionOut:
    """
    Result of every flow that ends in a fresh session.

    :param user: Public view of the authenticated user.
    :param tokens: Newly minted short/long token pair.
    """

    user: UserPublicOut
    tokens: TokenPair


@dataclass(frozen=True, slots=True)
class TvCodeOut:
    """
    A freshly issued TV-login code plus the issuer's refreshed session.

    :param code: Code to show on the TV screen.
    :param expires_at: When the code stops being redeemable.
    """

    code: str
    expires_at: datetime
    user: UserPublicOut
    tokens: TokenPair
