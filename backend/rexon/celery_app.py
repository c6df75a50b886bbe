from __future__ import annotations

import json
import os
from datetime import datetime

from celery import Celery
from celery.signals import task_failure, task_retry


_SIGNALS_BOUND = False

WELCOME_EMAIL_TASK = "rexon.tasks.email_tasks.send_welcome_email_task"


def _broker_url() -> str:
    return (
        (os.getenv("CELERY_BROKER_URL") or "").strip()
        or (os.getenv("REDIS_URL") or "").strip()
        or "redis://localhost:6379/0"
    )


def _result_backend(broker_url: str) -> str:
    return (
        (os.getenv("CELERY_RESULT_BACKEND") or "").strip()
        or (os.getenv("REDIS_URL") or "").strip()
        or broker_url
    )


def email_queue_name() -> str:
    return (os.getenv("CELERY_EMAIL_QUEUE") or "").strip() or "email"


def email_task_rate_limit() -> str:
    """Worker-side throttle for outbound mail, in Celery's ``N/s|m|h`` form."""
    return (os.getenv("EMAIL_TASK_RATE_LIMIT") or "").strip() or "60/m"


def mask_email(value) -> str:
    text = str(value or "").strip()
    local, sep, domain = text.partition("@")
    if not sep or not local:
        return ""
    return f"{local[0]}***@{domain}"


def _recipient(args, kwargs) -> str:
    if isinstance(kwargs, dict) and kwargs.get("email"):
        return mask_email(kwargs["email"])
    # send_welcome_email_task(full_name, email, city)
    if isinstance(args, (list, tuple)) and len(args) >= 2:
        return mask_email(args[1])
    return ""


def _trace_id(kwargs) -> str:
    if isinstance(kwargs, dict):
        return str(kwargs.get("trace_id") or "").strip()
    return ""


def _bind_task_observers(flask_app) -> None:
    global _SIGNALS_BOUND
    if _SIGNALS_BOUND:
        return

    @task_failure.connect(weak=False)
    def _on_task_failure(sender=None, task_id=None, exception=None, args=None, kwargs=None, einfo=None, **extra):
        payload = {
            "event": "celery_task_failure",
            "task_name": getattr(sender, "name", "") if sender is not None else "",
            "task_id": str(task_id or ""),
            "trace_id": _trace_id(kwargs),
            "recipient": _recipient(args, kwargs),
            "exception": str(exception or ""),
            "timestamp": datetime.utcnow().isoformat(),
        }
        if einfo is not None:
            payload["einfo"] = str(einfo)
        flask_app.logger.error(json.dumps(payload))

    @task_retry.connect(weak=False)
    def _on_task_retry(request=None, reason=None, einfo=None, **extra):
        args = getattr(request, "args", None)
        kwargs = getattr(request, "kwargs", None)
        payload = {
            "event": "celery_task_retry",
            "task_name": str(getattr(request, "task", "") or ""),
            "task_id": str(getattr(request, "id", "") or ""),
            "trace_id": _trace_id(kwargs),
            "recipient": _recipient(args, kwargs),
            "reason": str(reason or ""),
            "retry_count": int(getattr(request, "retries", 0) or 0),
            "timestamp": datetime.utcnow().isoformat(),
        }
        flask_app.logger.warning(json.dumps(payload))

    _SIGNALS_BOUND = True


def create_celery_app(flask_app) -> Celery:
    broker = _broker_url()
    backend = _result_backend(broker)
    celery = Celery("rexon", broker=broker, backend=backend)
    queue = email_queue_name()
    celery.conf.update(
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        timezone="UTC",
        enable_utc=True,
        task_default_queue=queue,
        task_routes={"rexon.tasks.email_tasks.*": {"queue": queue}},
        task_annotations={WELCOME_EMAIL_TASK: {"rate_limit": email_task_rate_limit()}},
        # Welcome mail is fire-and-forget.
        task_ignore_result=True,
    )

    class FlaskContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskContextTask
    celery.set_default()
    celery.autodiscover_tasks(["rexon.tasks"], related_name="email_tasks")
    _bind_task_observers(flask_app)
    return celery
