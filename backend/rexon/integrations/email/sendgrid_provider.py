from __future__ import annotations

import os

import requests

from rexon.integrations.common import IntegrationResult
from rexon.integrations.email.base import EmailMessage, EmailProvider


SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


def _map_sendgrid_error(status: int) -> str:
    if status in (401, 403):
        return "SENDGRID_AUTH_FAILED"
    if status == 429:
        return "SENDGRID_RATE_LIMITED"
    if status in (400, 413):
        return "SENDGRID_BAD_REQUEST"
    return "SENDGRID_PROVIDER_DOWN"


class SendGridEmailProvider(EmailProvider):
    name = "sendgrid"

    def __init__(self, *, api_key: str, sender: str):
        self.api_key = api_key
        self.sender = sender

    def _payload(self, message: EmailMessage) -> dict:
        payload = {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": self.sender},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }
        if message.categories:
            payload["categories"] = list(message.categories)
        if message.custom_args:
            payload["custom_args"] = {k: str(v) for k, v in message.custom_args.items()}
        return payload

    def send(self, message: EmailMessage) -> IntegrationResult:
        try:
            r = requests.post(
                SENDGRID_SEND_URL,
                json=self._payload(message),
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=12,
            )
        except requests.Timeout:
            return IntegrationResult(ok=False, code="SENDGRID_PROVIDER_DOWN", message="timeout")
        except requests.RequestException as e:
            return IntegrationResult(ok=False, code="SENDGRID_PROVIDER_DOWN", message=str(e)[:200])
        if 200 <= r.status_code < 300:
            return IntegrationResult(
                ok=True,
                code="OK",
                message="sent",
                raw={"message_id": r.headers.get("X-Message-Id", "")},
            )
        detail = ""
        try:
            data = r.json() if r.content else {}
            errors = data.get("errors") if isinstance(data, dict) else None
            if errors:
                detail = str(errors[0].get("message") or "")
        except ValueError:
            detail = r.text[:200]
        return IntegrationResult(
            ok=False,
            code=_map_sendgrid_error(r.status_code),
            message=(detail or f"http_{r.status_code}")[:200],
        )


def sendgrid_health() -> dict:
    missing = []
    if not (os.getenv("SENDGRID_API_KEY") or "").strip():
        missing.append("SENDGRID_API_KEY")
    return {"missing": missing}
