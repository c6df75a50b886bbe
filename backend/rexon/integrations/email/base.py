from __future__ import annotations

from dataclasses import dataclass, field

from rexon.integrations.common import IntegrationResult


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str
    categories: list[str] = field(default_factory=list)
    custom_args: dict[str, str] = field(default_factory=dict)


class EmailProvider:
    name = "unknown"

    def send(self, message: EmailMessage) -> IntegrationResult:
        raise NotImplementedError
