from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import requests


class OAuthError(RuntimeError):
    """Raised when the provider rejects a code exchange or profile fetch."""

    def __init__(self, code: str, message: str = ""):
        super().__init__(message or code)
        self.code = code


@dataclass
class OAuthProfile:
    provider: str
    provider_id: str
    email: str
    first_name: str = ""
    last_name: str = ""


class OAuthProvider:
    name = "unknown"
    authorize_url = ""
    token_url = ""
    scope = ""

    def __init__(self, *, client_id: str, client_secret: str, redirect_uri: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    def extra_authorize_params(self) -> dict:
        return {}

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
        }
        params.update(self.extra_authorize_params())
        return f"{self.authorize_url}?{urlencode(params)}"

    def token_request_data(self, code: str) -> dict:
        return {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }

    def exchange_code(self, code: str) -> str:
        try:
            r = requests.post(self.token_url, data=self.token_request_data(code), timeout=12)
        except requests.RequestException as e:
            raise OAuthError("token_exchange_failed", str(e)[:200]) from e
        if r.status_code != 200:
            raise OAuthError("token_exchange_failed", f"http_{r.status_code}")
        token = (r.json() or {}).get("access_token")
        if not token:
            raise OAuthError("token_exchange_failed", "missing access_token")
        return token

    def _get_json(self, url: str, access_token: str) -> dict:
        try:
            r = requests.get(url, headers={"Authorization": f"Bearer {access_token}"}, timeout=12)
        except requests.RequestException as e:
            raise OAuthError("user_info_failed", str(e)[:200]) from e
        if r.status_code != 200:
            raise OAuthError("user_info_failed", f"http_{r.status_code}")
        return r.json() or {}

    def fetch_profile(self, access_token: str) -> OAuthProfile:
        raise NotImplementedError
