"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    EmailVerifyQuerySchema,
    LoginSchema,
    OAuthCallbackQuerySchema,
    SessionSchema,
    SignupSchema,
    TokenPairSchema,
    TvCodeSchema,
    TvRedeemSchema,
)
from .user import OAuthIdentitySchema, UserPatchSchema, UserSchema

__all__ = [
    "EmailVerifyQuerySchema",
    "LoginSchema",
    "OAuthCallbackQuerySchema",
    "SessionSchema",
    "SignupSchema",
    "TokenPairSchema",
    "TvCodeSchema",
    "TvRedeemSchema",
    "OAuthIdentitySchema",
    "UserPatchSchema",
    "UserSchema",
]
