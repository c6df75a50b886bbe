from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from flask import current_app

from rexon import create_app
from rexon.celery_app import WELCOME_EMAIL_TASK, _recipient, create_celery_app, mask_email


class CeleryAppTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        cls._prev_db_url = os.getenv("DATABASE_URL")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        cls.app = create_app()
        cls.app.config.update(TESTING=True)

    @classmethod
    def tearDownClass(cls):
        if cls._prev_db_uri is None:
            os.environ.pop("SQLALCHEMY_DATABASE_URI", None)
        else:
            os.environ["SQLALCHEMY_DATABASE_URI"] = cls._prev_db_uri
        if cls._prev_db_url is None:
            os.environ.pop("DATABASE_URL", None)
        else:
            os.environ["DATABASE_URL"] = cls._prev_db_url

    def _celery(self, **env):
        values = {
            "CELERY_BROKER_URL": "memory://",
            "CELERY_RESULT_BACKEND": "cache+memory://",
            "CELERY_EMAIL_QUEUE": "",
            "EMAIL_TASK_RATE_LIMIT": "",
        }
        values.update(env)
        with patch.dict(os.environ, values):
            return create_celery_app(self.app)

    def test_email_tasks_route_to_email_queue(self):
        celery = self._celery()
        self.assertEqual(celery.conf.task_default_queue, "email")
        self.assertEqual(celery.conf.task_routes, {"rexon.tasks.email_tasks.*": {"queue": "email"}})
        self.assertEqual(celery.conf.task_annotations[WELCOME_EMAIL_TASK], {"rate_limit": "60/m"})

    def test_queue_and_rate_limit_from_env(self):
        celery = self._celery(CELERY_EMAIL_QUEUE="mail-low", EMAIL_TASK_RATE_LIMIT="10/s")
        self.assertEqual(celery.conf.task_default_queue, "mail-low")
        self.assertEqual(celery.conf.task_routes["rexon.tasks.email_tasks.*"], {"queue": "mail-low"})
        self.assertEqual(celery.conf.task_annotations[WELCOME_EMAIL_TASK]["rate_limit"], "10/s")

    def test_tasks_run_inside_flask_context(self):
        celery = self._celery()

        @celery.task(name="rexon.tests.app_name")
        def app_name():
            return current_app.name

        self.assertEqual(app_name(), self.app.name)

    def test_recipient_is_masked_in_task_logs(self):
        self.assertEqual(mask_email("meera@example.com"), "m***@example.com")
        self.assertEqual(mask_email("not-an-address"), "")
        self.assertEqual(_recipient(["Meera", "meera@example.com", "Chennai"], {"trace_id": "rid-1"}), "m***@example.com")
        self.assertEqual(_recipient([], {"email": "ravi@example.com"}), "r***@example.com")
        self.assertEqual(_recipient(None, None), "")


if __name__ == "__main__":
    unittest.main()
