from __future__ import annotations

from rexon.integrations.oauth.base import OAuthError, OAuthProfile, OAuthProvider


class GoogleOAuthProvider(OAuthProvider):
    name = "google"
    authorize_url = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url = "https://oauth2.googleapis.com/token"
    userinfo_url = "https://www.googleapis.com/oauth2/v2/userinfo"
    scope = "openid email profile"

    def extra_authorize_params(self) -> dict:
        return {"access_type": "offline", "prompt": "consent"}

    def fetch_profile(self, access_token: str) -> OAuthProfile:
        data = self._get_json(self.userinfo_url, access_token)
        email = (data.get("email") or "").strip().lower()
        provider_id = str(data.get("id") or "").strip()
        if not email or not provider_id:
            raise OAuthError("user_info_failed", "profile missing id or email")
        return OAuthProfile(
            provider=self.name,
            provider_id=provider_id,
            email=email,
            first_name=data.get("given_name") or "",
            last_name=data.get("family_name") or "",
        )
