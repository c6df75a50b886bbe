from __future__ import annotations

import json
import time
from datetime import datetime

from celery import shared_task
from flask import current_app

from rexon.celery_app import WELCOME_EMAIL_TASK
from rexon.services.email_service import send_welcome_email


def _task_log(task_name: str, *, status: str, started_at: float, trace_id: str = "", **extra):
    duration_ms = int(max(0.0, (time.perf_counter() - float(started_at))) * 1000.0)
    payload = {
        "task_name": task_name,
        "status": status,
        "duration_ms": duration_ms,
        "trace_id": str(trace_id or ""),
        "timestamp": datetime.utcnow().isoformat(),
    }
    payload.update(extra or {})
    current_app.logger.info(json.dumps(payload))


@shared_task(bind=True, name=WELCOME_EMAIL_TASK, max_retries=3)
def send_welcome_email_task(self, full_name: str, email: str, city: str, trace_id: str = ""):
    started = time.perf_counter()
    result = send_welcome_email(full_name=full_name, email=email, city=city)
    retryable = result.code in ("SENDGRID_PROVIDER_DOWN", "SENDGRID_RATE_LIMITED")
    if not result.ok and retryable and int(self.request.retries or 0) < int(self.max_retries or 0):
        countdown = int(min(900, 30 * (2 ** int(self.request.retries or 0))))
        _task_log("send_welcome_email", status="retrying", started_at=started, trace_id=trace_id, code=result.code, countdown=countdown)
        raise self.retry(countdown=countdown)
    _task_log(
        "send_welcome_email",
        status="sent" if result.ok else "failed",
        started_at=started,
        trace_id=trace_id,
        code=result.code,
    )
    return {"ok": result.ok, "code": result.code}
