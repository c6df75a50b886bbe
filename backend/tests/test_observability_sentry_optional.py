from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from flask import Flask

from rexon.utils.observability import _before_send_scrub, init_sentry, set_sentry_user


class SentryOptionalInitTestCase(unittest.TestCase):
    def test_sentry_init_is_noop_without_dsn(self):
        app = Flask(__name__)
        with patch.dict(os.environ, {"SENTRY_DSN": ""}, clear=False):
            init_sentry(app)

    def test_set_user_is_noop_without_dsn(self):
        with patch.dict(os.environ, {"SENTRY_DSN": ""}, clear=False):
            set_sentry_user(7, email="a@example.com", role="user")
            set_sentry_user(None)

    def test_scrub_redacts_session_cookie_and_auth_header(self):
        event = {
            "request": {
                "headers": {"Authorization": "Bearer abc", "Cookie": "session=xyz"},
                "cookies": {"session": "xyz"},
            }
        }
        scrubbed = _before_send_scrub(event, None)
        req = scrubbed["request"]
        self.assertNotIn("xyz", str(req.get("cookies")))
        self.assertNotIn("Bearer abc", str(req.get("headers")))


if __name__ == "__main__":
    unittest.main()
