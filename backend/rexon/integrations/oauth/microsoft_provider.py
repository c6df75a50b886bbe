from __future__ import annotations

from rexon.integrations.oauth.base import OAuthError, OAuthProfile, OAuthProvider


class MicrosoftOAuthProvider(OAuthProvider):
    name = "microsoft"
    authorize_url = "https://login.microsoftonline.com/common/oauth2/v2.0/authorize"
    token_url = "https://login.microsoftonline.com/common/oauth2/v2.0/token"
    profile_url = "https://graph.microsoft.com/v1.0/me"
    scope = "https://graph.microsoft.com/User.Read openid profile email offline_access"

    def extra_authorize_params(self) -> dict:
        return {"response_mode": "query", "prompt": "select_account"}

    def token_request_data(self, code: str) -> dict:
        data = super().token_request_data(code)
        data["scope"] = self.scope
        return data

    def fetch_profile(self, access_token: str) -> OAuthProfile:
        data = self._get_json(self.profile_url, access_token)
        email = (data.get("mail") or data.get("userPrincipalName") or "").strip().lower()
        provider_id = str(data.get("id") or "").strip()
        if not email or not provider_id:
            raise OAuthError("no_email", "profile missing id or email")
        return OAuthProfile(
            provider=self.name,
            provider_id=provider_id,
            email=email,
            first_name=data.get("givenName") or "",
            last_name=data.get("surname") or "",
        )
