from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from rexon import create_app
from rexon.extensions import db
from rexon.models import User


class BootstrapSuperadminCliTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        cls._prev_db_url = os.getenv("DATABASE_URL")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        with cls.app.app_context():
            db.create_all()
            existing = User(first_name="Exi", last_name="Sting", email="promote.me@example.com", role="user")
            existing.set_password("OldSecret1")
            db.session.add(existing)
            db.session.commit()
        cls.runner = cls.app.test_cli_runner()

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

    def test_requires_credentials(self):
        with patch.dict(os.environ, {"SUPERADMIN_EMAIL": "", "SUPERADMIN_PASSWORD": ""}):
            result = self.runner.invoke(args=["bootstrap-superadmin"])
        self.assertNotEqual(result.exit_code, 0)
        self.assertIn("SUPERADMIN_EMAIL and SUPERADMIN_PASSWORD must be set", result.output)

    def test_creates_superadmin(self):
        env = {"SUPERADMIN_EMAIL": "Boss@Example.com", "SUPERADMIN_PASSWORD": "VeryStrong1"}
        with patch.dict(os.environ, env):
            result = self.runner.invoke(args=["bootstrap-superadmin", "--first-name", "Big", "--last-name", "Boss"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("superadmin_bootstrap_ok boss@example.com", result.output)
        with self.app.app_context():
            user = User.query.filter_by(email="boss@example.com").first()
            self.assertEqual(user.role, "superadmin")
            self.assertEqual(user.first_name, "Big")
            self.assertTrue(user.check_password("VeryStrong1"))

    def test_promotes_existing_user(self):
        env = {"SUPERADMIN_EMAIL": "promote.me@example.com", "SUPERADMIN_PASSWORD": "NewSecret1"}
        with patch.dict(os.environ, env):
            result = self.runner.invoke(args=["bootstrap-superadmin"])
        self.assertEqual(result.exit_code, 0, result.output)
        with self.app.app_context():
            user = User.query.filter_by(email="promote.me@example.com").first()
            self.assertEqual(user.role, "superadmin")
            self.assertTrue(user.check_password("NewSecret1"))


if __name__ == "__main__":
    unittest.main()
