"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

from .user import UserSchema


class SignupSchema(Schema):
    """Input payload for account creation.

    Password strength is configurable and enforced by the credential service.
    """

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class TvRedeemSchema(Schema):
    """Input payload for exchanging a TV-login code."""

    code = fields.String(required=True, validate=validate.Length(min=1, max=64))


class EmailVerifyQuerySchema(Schema):
    """Query string of the emailed verification link."""

    class Meta:
        unknown = EXCLUDE

    token = fields.String(required=True, validate=validate.Length(min=1, max=64))


class OAuthCallbackQuerySchema(Schema):
    """Query string the OAuth provider redirects back with."""

    class Meta:
        unknown = EXCLUDE

    code = fields.String(required=True, validate=validate.Length(min=1))
    state = fields.String(required=True, validate=validate.Length(min=1))


class TokenPairSchema(Schema):
    """Short-lived and long-lived session tokens."""

    short = fields.String(required=True)
    long = fields.String(required=True)
    token_type = fields.Constant("bearer")


class SessionSchema(Schema):
    """Response payload for every flow that opens a session."""

    user = fields.Nested(UserSchema, required=True)
    tokens = fields.Nested(TokenPairSchema, required=True)


class TvCodeSchema(SessionSchema):
    """Response payload for a freshly issued TV-login code."""

    code = fields.String(required=True)
    expires_at = fields.DateTime(required=True)
