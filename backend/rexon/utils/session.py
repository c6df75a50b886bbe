from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict, Optional

import jwt
from flask import request

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "session"
SESSION_TTL_SECONDS = 60 * 60 * 24 * 7

_CLAIM_KEYS = ("userId", "email", "firstName", "lastName", "authProvider", "role")


def _secret() -> str:
    return (
        (os.getenv("JWT_SECRET") or "").strip()
        or (os.getenv("SECRET_KEY") or "").strip()
        or "dev-secret-change-me"
    )


def _is_production() -> bool:
    env = (os.getenv("REXON_ENV") or "dev").strip().lower()
    return env in ("prod", "production")


def session_claims_for(user) -> Dict[str, Any]:
    return {
        "userId": int(user.id),
        "email": user.email,
        "firstName": user.first_name or "",
        "lastName": user.last_name or "",
        "authProvider": user.auth_provider or "email",
        "role": user.role or "user",
    }


def encode_session(claims: Dict[str, Any], ttl_seconds: int = SESSION_TTL_SECONDS) -> str:
    now = int(time.time())
    payload = {key: claims.get(key) for key in _CLAIM_KEYS}
    payload["iat"] = now
    payload["exp"] = now + int(ttl_seconds)
    return jwt.encode(payload, _secret(), algorithm="HS256")


def decode_session(token: str) -> Optional[Dict[str, Any]]:
    if not token:
        return None
    try:
        return jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        logger.info("session_expired")
        return None
    except jwt.InvalidTokenError:
        logger.info("session_invalid")
        return None


def create_session(response, user) -> str:
    """Sign a session token for ``user`` and attach it to ``response`` as a cookie."""
    token = encode_session(session_claims_for(user))
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=SESSION_TTL_SECONDS,
        httponly=True,
        secure=_is_production(),
        samesite="Lax",
        path="/",
    )
    return token


def get_session() -> Optional[Dict[str, Any]]:
    return decode_session(request.cookies.get(SESSION_COOKIE_NAME) or "")


def delete_session(response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")
