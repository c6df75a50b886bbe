from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass
class IntegrationResult:
    ok: bool
    code: str = ""
    message: str = ""
    raw: dict | None = None


class IntegrationDisabledError(RuntimeError):
    pass


class IntegrationMisconfiguredError(RuntimeError):
    pass


def integrations_mode() -> str:
    mode = (os.getenv("INTEGRATIONS_MODE") or "sandbox").strip().lower()
    if mode not in ("disabled", "sandbox", "live"):
        return "disabled"
    return mode
