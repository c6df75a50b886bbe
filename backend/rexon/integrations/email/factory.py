from __future__ import annotations

import os

from rexon.integrations.common import (
    IntegrationDisabledError,
    IntegrationMisconfiguredError,
    integrations_mode,
)
from rexon.integrations.email.base import EmailProvider
from rexon.integrations.email.mock_provider import MockEmailProvider
from rexon.integrations.email.sendgrid_provider import SendGridEmailProvider, sendgrid_health

DEFAULT_SENDER = "no-reply@pryzmatech.com"

_MOCK_PROVIDER = MockEmailProvider()


def get_mock_email_provider() -> MockEmailProvider:
    return _MOCK_PROVIDER


def build_email_provider() -> EmailProvider:
    mode = integrations_mode()
    if mode == "disabled":
        raise IntegrationDisabledError("INTEGRATION_DISABLED:email")
    if mode == "sandbox":
        return _MOCK_PROVIDER

    api_key = (os.getenv("SENDGRID_API_KEY") or "").strip()
    if not api_key:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing SENDGRID_API_KEY")
    sender = (os.getenv("EMAIL_FROM") or DEFAULT_SENDER).strip()
    return SendGridEmailProvider(api_key=api_key, sender=sender)


def email_health() -> dict:
    mode = integrations_mode()
    missing = sendgrid_health().get("missing", []) if mode == "live" else []
    if mode == "disabled":
        status = "disabled"
    elif missing:
        status = "misconfigured"
    else:
        status = "configured"
    return {"status": status, "mode": mode, "missing": missing}
