"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, current_app, redirect, request

from authapi.api.deps import bearer_token, get_auth_service, json_response, timing
from authapi.schemas import (
    EmailVerifyQuerySchema,
    LoginSchema,
    SessionSchema,
    SignupSchema,
    TvCodeSchema,
    TvRedeemSchema,
)
from authapi.services._shared.ports import TokenClass
from authapi.services.auth.dto import LoginIn, SignupIn

bp = Blueprint("auth", __name__, url_prefix="/auth")

signup_schema = SignupSchema()
login_schema = LoginSchema()
tv_redeem_schema = TvRedeemSchema()
email_verify_schema = EmailVerifyQuerySchema()
session_schema = SessionSchema()
tv_code_schema = TvCodeSchema()


@bp.post("/signup")
@timing
def signup():
    """Create an account, send the verification email and open a session."""

    data = signup_schema.load(request.get_json(silent=True) or {})
    out = get_auth_service().signup(SignupIn(email=data["email"], password=data["password"]))
    return json_response({"data": session_schema.dump(out)}, status=201)


@bp.post("/login")
@timing
def login():
    """Authenticate email and password and issue a token pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    out = get_auth_service().login(LoginIn(email=data["email"], password=data["password"]))
    return json_response({"data": session_schema.dump(out)})


@bp.get("/session/<any(long, short):token_class>")
@timing
def refresh_session(token_class: str):
    """Trade a valid short or long session token for a fresh pair."""

    token, strategy = bearer_token()
    out = get_auth_service().authenticate_session(token, TokenClass(token_class), strategy)
    return json_response({"data": session_schema.dump(out)})


@bp.post("/tv/codes")
@timing
def issue_tv_code():
    """Issue a TV-login code for the holder of a short session token."""

    token, strategy = bearer_token()
    out = get_auth_service().issue_tv_code(token, strategy)
    return json_response({"data": tv_code_schema.dump(out)}, status=201)


@bp.post("/tv/redeem")
@timing
def redeem_tv_code():
    """Exchange a TV-login code for a session of the user who issued it."""

    data = tv_redeem_schema.load(request.get_json(silent=True) or {})
    out = get_auth_service().redeem_tv_code(data["code"])
    return json_response({"data": session_schema.dump(out)})


@bp.get("/email/verify")
@timing
def verify_email():
    """Redeem the emailed verification code and redirect to the frontend."""

    data = email_verify_schema.load(request.args)
    get_auth_service().verify_email(data["token"])
    return redirect(current_app.config["EMAIL_VERIFIED_REDIRECT_URL"], code=302)
