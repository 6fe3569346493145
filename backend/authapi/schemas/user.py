"""User resource schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import Schema, ValidationError, fields, validate, validates_schema


class OAuthIdentitySchema(Schema):
    provider = fields.String(required=True)
    profile_id = fields.String(required=True)


class UserSchema(Schema):
    """Public representation of a user entity (never the password hash)."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    email_verified = fields.Boolean(required=True)
    oauth_identities = fields.List(fields.Nested(OAuthIdentitySchema), required=True)
    created_at = fields.DateTime(allow_none=True)
    updated_at = fields.DateTime(allow_none=True)


class UserPatchSchema(Schema):
    """Self-service patch: new email and/or new password."""

    email = fields.Email(validate=validate.Length(max=254))
    password = fields.String(validate=validate.Length(min=1, max=128))

    @validates_schema
    def _require_one(self, data: dict[str, Any], **_: Any) -> None:
        if not data:
            raise ValidationError("Provide at least one of: email, password.")
