from __future__ import annotations

import os

from rexon.integrations.common import IntegrationResult
from rexon.integrations.email.base import EmailMessage, EmailProvider


class MockEmailProvider(EmailProvider):
    name = "mock"

    def __init__(self):
        self.outbox: list[EmailMessage] = []

    def send(self, message: EmailMessage) -> IntegrationResult:
        if (os.getenv("MOCK_EMAIL_FORCE_FAIL") or "").strip() == "1":
            return IntegrationResult(ok=False, code="EMAIL_PROVIDER_DOWN", message="mock forced failure")
        self.outbox.append(message)
        return IntegrationResult(ok=True, code="OK", message="mock_sent", raw={"to": message.to})
