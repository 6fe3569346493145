"""OAuth account-linking endpoints (Discord, Twitch)."""

from __future__ import annotations

from flask import Blueprint, redirect, request

from authapi.api.deps import bearer_token, get_auth_service, json_response, timing
from authapi.schemas import OAuthCallbackQuerySchema, SessionSchema

bp = Blueprint("oauth", __name__, url_prefix="/oauth")

callback_schema = OAuthCallbackQuerySchema()
session_schema = SessionSchema()


@bp.get("/<provider>")
@timing
def start(provider: str):
    """Redirect a signed-in user to the provider's consent screen."""

    token, strategy = bearer_token()
    return redirect(get_auth_service().begin_oauth(provider, token, strategy), code=302)


@bp.get("/<provider>/callback")
@timing
def callback(provider: str):
    """Complete the provider round trip and link the returned profile."""

    data = callback_schema.load(request.args)
    out = get_auth_service().complete_oauth(provider, data["code"], data["state"])
    return json_response({"data": session_schema.dump(out)})
