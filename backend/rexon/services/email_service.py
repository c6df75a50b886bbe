from __future__ import annotations

import logging
import os

from flask import current_app, render_template

from rexon.integrations.common import (
    IntegrationDisabledError,
    IntegrationMisconfiguredError,
    IntegrationResult,
)
from rexon.integrations.email.base import EmailMessage
from rexon.integrations.email.factory import build_email_provider
from rexon.utils.observability import get_request_id

logger = logging.getLogger(__name__)


def render_welcome_email(*, full_name: str, email: str, city: str) -> EmailMessage:
    context = {"full_name": full_name, "email": email, "city": city}
    return EmailMessage(
        to=email,
        subject=f"Welcome to Rexon, {full_name}! \U0001F3E0",
        html=render_template("emails/welcome.html", **context),
        text=render_template("emails/welcome.txt", **context),
        categories=["customer-onboarding", "welcome-email"],
        custom_args={"customer_city": city, "email_type": "welcome"},
    )


def send_welcome_email(*, full_name: str, email: str, city: str) -> IntegrationResult:
    try:
        provider = build_email_provider()
    except IntegrationDisabledError:
        logger.info("welcome_email_skipped reason=integration_disabled")
        return IntegrationResult(ok=False, code="INTEGRATION_DISABLED", message="email integration disabled")
    except IntegrationMisconfiguredError as e:
        logger.warning("welcome_email_skipped reason=misconfigured detail=%s", e)
        return IntegrationResult(ok=False, code="INTEGRATION_MISCONFIGURED", message=str(e))

    result = provider.send(render_welcome_email(full_name=full_name, email=email, city=city))
    if result.ok:
        logger.info("welcome_email_sent provider=%s", provider.name)
    else:
        logger.warning("welcome_email_failed provider=%s code=%s message=%s", provider.name, result.code, result.message)
    return result


def _celery_enabled() -> bool:
    if bool(current_app.config.get("TESTING")):
        return False
    return bool((os.getenv("CELERY_BROKER_URL") or "").strip())


def dispatch_welcome_email(*, full_name: str, email: str, city: str) -> None:
    """Queue the welcome email on a worker when a broker is configured, else send it now.

    Delivery problems are logged; they never reach the caller.
    """
    if _celery_enabled():
        try:
            from rexon.tasks.email_tasks import send_welcome_email_task

            send_welcome_email_task.delay(full_name, email, city, trace_id=get_request_id())
            return
        except Exception:
            current_app.logger.exception("welcome_email_enqueue_failed")
    try:
        send_welcome_email(full_name=full_name, email=email, city=city)
    except Exception:
        current_app.logger.exception("welcome_email_send_failed")
