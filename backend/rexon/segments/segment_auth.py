from __future__ import annotations

import os
from urllib.parse import quote

from flask import Blueprint, current_app, jsonify, redirect, request

from rexon.integrations.common import IntegrationMisconfiguredError
from rexon.integrations.oauth.base import OAuthError
from rexon.integrations.oauth.factory import build_oauth_provider
from rexon.models import User
from rexon.services.account_service import (
    AccountConflict,
    create_email_user,
    touch_last_login,
    upsert_oauth_user,
)
from rexon.utils.api import error_response, get_request_payload
from rexon.utils.session import create_session, delete_session, get_session
from rexon.utils.validators import MIN_PASSWORD_LENGTH, is_valid_account_email

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/auth")

_AUTH_FAILED = "Authentication failed. Please try again."


def _user_payload(user: User) -> dict:
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "authProvider": user.auth_provider,
        "role": user.role,
    }


def _public_url() -> str:
    return (current_app.config.get("PUBLIC_URL") or "").rstrip("/")


def _home_redirect(error: str | None = None):
    target = f"{_public_url()}/"
    if error:
        target = f"{target}?error={quote(error)}"
    return redirect(target)


@auth_bp.post("/signup")
def signup():
    data = get_request_payload("signup")
    first_name = str(data.get("firstName") or "").strip()
    last_name = str(data.get("lastName") or "").strip()
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")
    phone = str(data.get("phone") or "").strip()

    if not first_name or not last_name or not email or not password:
        return error_response("Missing required fields", 400)
    if not is_valid_account_email(email):
        return error_response("Invalid email format", 400)
    if len(password) < MIN_PASSWORD_LENGTH:
        return error_response(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", 400)

    try:
        user = create_email_user(
            first_name=first_name,
            last_name=last_name,
            email=email,
            password=password,
            phone=phone,
        )
    except AccountConflict as e:
        return error_response(str(e), 409)

    current_app.logger.info("signup_ok user_id=%s", user.id)
    resp = jsonify({"success": True, "user": _user_payload(user)})
    resp.status_code = 201
    create_session(resp, user)
    return resp


@auth_bp.post("/signin")
def signin():
    data = get_request_payload("signin")
    email = str(data.get("email") or "").strip().lower()
    password = str(data.get("password") or "")
    if not email or not password:
        return error_response("Email and password are required", 400)

    user = User.query.filter_by(email=email).first()
    if not user:
        return error_response("Invalid email or password", 401)
    if user.auth_provider != "email":
        provider = user.auth_provider
        return error_response(
            f"This account uses {provider} authentication. Please sign in with {provider}.",
            400,
        )
    if not user.check_password(password):
        current_app.logger.info("signin_failed user_id=%s", user.id)
        return error_response("Invalid email or password", 401)

    touch_last_login(user)
    resp = jsonify({"success": True, "user": _user_payload(user)})
    create_session(resp, user)
    return resp


@auth_bp.post("/signout")
def signout():
    resp = jsonify({"success": True})
    delete_session(resp)
    return resp


@auth_bp.get("/me")
def me():
    return jsonify({"user": get_session()}), 200


@auth_bp.get("/debug-session")
def debug_session():
    if (os.getenv("DEBUG_PROBES") or "").strip() != "1":
        return jsonify({"success": False, "error": "Not found"}), 404
    session = get_session()
    return jsonify(
        {
            "session": session,
            "hasSession": bool(session),
            "role": (session or {}).get("role"),
            "userId": (session or {}).get("userId"),
            "email": (session or {}).get("email"),
        }
    )


def _oauth_start(provider_name: str):
    try:
        provider = build_oauth_provider(provider_name, public_url=_public_url())
    except IntegrationMisconfiguredError as e:
        current_app.logger.warning("oauth_start_misconfigured provider=%s detail=%s", provider_name, e)
        return _home_redirect(f"{provider_name}_not_configured")
    return redirect(provider.authorization_url())


def _oauth_callback(provider_name: str):
    provider_error = (request.args.get("error") or "").strip()
    if provider_error:
        current_app.logger.info("oauth_denied provider=%s error=%s", provider_name, provider_error)
        return _home_redirect(provider_error)
    code = (request.args.get("code") or "").strip()
    if not code:
        return _home_redirect("no_code")

    try:
        provider = build_oauth_provider(provider_name, public_url=_public_url())
        access_token = provider.exchange_code(code)
        profile = provider.fetch_profile(access_token)
        user = upsert_oauth_user(profile)
    except IntegrationMisconfiguredError as e:
        current_app.logger.warning("oauth_callback_misconfigured provider=%s detail=%s", provider_name, e)
        return _home_redirect(_AUTH_FAILED)
    except OAuthError as e:
        current_app.logger.warning("oauth_callback_failed provider=%s code=%s", provider_name, e.code)
        message = str(e) if e.code == "provider_mismatch" else _AUTH_FAILED
        return _home_redirect(message)

    current_app.logger.info("oauth_signin_ok provider=%s user_id=%s", provider_name, user.id)
    resp = _home_redirect()
    create_session(resp, user)
    return resp


@auth_bp.get("/google")
def google_start():
    return _oauth_start("google")


@auth_bp.get("/google/callback")
def google_callback():
    return _oauth_callback("google")


@auth_bp.get("/microsoft")
def microsoft_start():
    return _oauth_start("microsoft")


@auth_bp.get("/microsoft/callback")
def microsoft_callback():
    return _oauth_callback("microsoft")
