from __future__ import annotations

import os

from rexon.integrations.common import IntegrationMisconfiguredError
from rexon.integrations.oauth.base import OAuthProvider
from rexon.integrations.oauth.google_provider import GoogleOAuthProvider
from rexon.integrations.oauth.microsoft_provider import MicrosoftOAuthProvider

_PROVIDERS = {
    "google": (GoogleOAuthProvider, "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET"),
    "microsoft": (MicrosoftOAuthProvider, "MICROSOFT_CLIENT_ID", "MICROSOFT_CLIENT_SECRET"),
}


def build_oauth_provider(name: str, *, public_url: str) -> OAuthProvider:
    try:
        cls, id_env, secret_env = _PROVIDERS[name]
    except KeyError:
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:unknown oauth provider {name}") from None
    client_id = (os.getenv(id_env) or "").strip()
    client_secret = (os.getenv(secret_env) or "").strip()
    base = (public_url or "").rstrip("/")
    missing = [env for env, val in ((id_env, client_id), ("PUBLIC_URL", base)) if not val]
    if missing:
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:missing {', '.join(missing)}")
    return cls(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=f"{base}/api/auth/{name}/callback",
    )
