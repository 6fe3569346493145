"""Self-service user endpoints."""

from __future__ import annotations

from flask import Blueprint, request

from authapi.api.deps import bearer_token, get_auth_service, json_response, timing
from authapi.schemas import SessionSchema, UserPatchSchema, UserSchema
from authapi.services.credentials.dto import UserPatchIn

bp = Blueprint("users", __name__, url_prefix="/users")

user_schema = UserSchema()
user_patch_schema = UserPatchSchema()
session_schema = SessionSchema()


@bp.patch("/<int:user_id>")
@timing
def update_user(user_id: int):
    """Change the caller's own email and/or password; returns fresh tokens."""

    token, _ = bearer_token()
    data = user_patch_schema.load(request.get_json(silent=True) or {})
    out = get_auth_service().update_account(token, user_id, UserPatchIn(**data))
    return json_response({"data": session_schema.dump(out)})


@bp.delete("/<int:user_id>")
@timing
def delete_user(user_id: int):
    """Delete the caller's own account and return its last snapshot."""

    token, _ = bearer_token()
    snapshot = get_auth_service().delete_account(token, user_id)
    return json_response({"data": user_schema.dump(snapshot)})
