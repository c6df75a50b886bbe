from __future__ import annotations

import io
import os
import tempfile
import unittest
from itertools import count
from unittest.mock import patch

from rexon import create_app
from rexon.extensions import db
from rexon.integrations.email.factory import get_mock_email_provider
from rexon.integrations.storage.base import StorageError
from rexon.integrations.storage.local_provider import LocalStorageProvider
from rexon.models import Agent, AgentDomain, Customer

_seq = count(1)


class _RegistrationBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        cls._prev_db_url = os.getenv("DATABASE_URL")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        cls._uploads = tempfile.TemporaryDirectory()
        cls.app = create_app()
        cls.app.config.update(TESTING=True, UPLOAD_DIR=cls._uploads.name)
        with cls.app.app_context():
            db.create_all()

    @classmethod
    def tearDownClass(cls):
        cls._uploads.cleanup()
        if cls._prev_db_uri is None:
            os.environ.pop("SQLALCHEMY_DATABASE_URI", None)
        else:
            os.environ["SQLALCHEMY_DATABASE_URI"] = cls._prev_db_uri
        if cls._prev_db_url is None:
            os.environ.pop("DATABASE_URL", None)
        else:
            os.environ["DATABASE_URL"] = cls._prev_db_url

    def _signed_in_client(self):
        client = self.app.test_client()
        n = next(_seq)
        res = client.post(
            "/api/auth/signup",
            json={"firstName": "Test", "lastName": f"User{n}", "email": f"user{n}@example.com", "password": "Secret123"},
        )
        self.assertEqual(res.status_code, 201, res.get_data(as_text=True))
        return client, res.get_json()["user"]["id"]


class CustomerRegistrationTestCase(_RegistrationBase):
    def setUp(self):
        get_mock_email_provider().outbox.clear()

    def _payload(self, **overrides):
        payload = {
            "fullName": "Ravi Kumar",
            "email": "ravi@example.com",
            "mobileNumber": "98765 43210",
            "city": "Hyderabad",
            "completeAddress": "12 Banjara Hills",
        }
        payload.update(overrides)
        return payload

    def test_requires_session(self):
        res = self.app.test_client().post("/api/customers/register", json=self._payload())
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.get_json()["error"], "Unauthorized. Please sign in first.")

    def test_validation_messages(self):
        client, _ = self._signed_in_client()
        res = client.post("/api/customers/register", json=self._payload(city=""))
        self.assertEqual(res.status_code, 400)
        self.assertIn("Please fill in all required fields", res.get_json()["error"])

        res = client.post("/api/customers/register", json=self._payload(mobileNumber="12345"))
        self.assertEqual(res.get_json()["error"], "Please enter a valid 10-digit Indian mobile number")

        res = client.post("/api/customers/register", json=self._payload(email="ravi@@example"))
        self.assertEqual(res.get_json()["error"], "Please enter a valid email address")

    def test_register_sends_welcome_email(self):
        client, user_id = self._signed_in_client()
        with patch.dict(os.environ, {"INTEGRATIONS_MODE": "sandbox"}):
            res = client.post(
                "/api/customers/register",
                json=self._payload(email="welcome@example.com", mobileNumber="9000000001"),
            )
        self.assertEqual(res.status_code, 201, res.get_data(as_text=True))
        body = res.get_json()
        self.assertEqual(body["customer"]["mobile_number"], "9000000001")
        self.assertEqual(body["customer"]["user_id"], user_id)

        outbox = get_mock_email_provider().outbox
        self.assertEqual(len(outbox), 1)
        self.assertEqual(outbox[0].to, "welcome@example.com")
        self.assertIn("Ravi Kumar", outbox[0].subject)
        self.assertIn("Hyderabad", outbox[0].text)

        profile = client.get("/api/customers/register").get_json()
        self.assertEqual(profile["customer"]["email"], "welcome@example.com")

    def test_email_failure_does_not_fail_registration(self):
        client, _ = self._signed_in_client()
        with patch.dict(os.environ, {"INTEGRATIONS_MODE": "sandbox", "MOCK_EMAIL_FORCE_FAIL": "1"}):
            res = client.post(
                "/api/customers/register",
                json=self._payload(email="quiet@example.com", mobileNumber="9000000002"),
            )
        self.assertEqual(res.status_code, 201)
        self.assertEqual(get_mock_email_provider().outbox, [])

    def test_duplicates_conflict_without_new_rows(self):
        client, _ = self._signed_in_client()
        payload = self._payload(email="dupe.customer@example.com", mobileNumber="9000000003")
        self.assertEqual(client.post("/api/customers/register", json=payload).status_code, 201)

        again = client.post("/api/customers/register", json=payload)
        self.assertEqual(again.status_code, 409)
        self.assertEqual(again.get_json()["error"], "Customer profile already exists for this account")

        other, _ = self._signed_in_client()
        res = other.post("/api/customers/register", json=self._payload(email="dupe.customer@example.com", mobileNumber="9000000004"))
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["error"], "This email is already registered as a customer")

        res = other.post("/api/customers/register", json=self._payload(email="fresh@example.com", mobileNumber="9000000003"))
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["error"], "This mobile number is already registered as a customer")

        with self.app.app_context():
            self.assertEqual(Customer.query.filter_by(mobile_number="9000000003").count(), 1)

    def test_profile_update(self):
        client, _ = self._signed_in_client()
        client.post("/api/customers/register", json=self._payload(email="upd@example.com", mobileNumber="9000000005"))
        res = client.put("/api/customers/register", json={"city": "Chennai", "mobile_number": "90000 00006"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json()["customer"]["city"], "Chennai")
        self.assertEqual(res.get_json()["customer"]["mobile_number"], "9000000006")
        self.assertEqual(client.put("/api/customers/register", json={}).status_code, 400)


class AgentRegistrationTestCase(_RegistrationBase):
    def _form(self, **overrides):
        n = next(_seq)
        form = {
            "fullName": "Meera Agent",
            "email": f"agent{n}@example.com",
            "primaryPhone": f"9{n:09d}",
            "city": "Pune",
            "languagesSpoken": '["English", "Marathi"]',
        }
        form.update(overrides)
        return form

    def test_check_domain(self):
        res = self.app.test_client().get("/api/agents/check-domain?name=admin")
        self.assertEqual(res.get_json(), {"available": False, "reason": "reserved"})

        res = self.app.test_client().get("/api/agents/check-domain?name=Bad_Name")
        self.assertEqual(res.status_code, 400)

        res = self.app.test_client().get("/api/agents/check-domain?name=meera-homes")
        self.assertEqual(res.get_json(), {"available": True})

    def test_register_with_domain_and_files(self):
        client, user_id = self._signed_in_client()
        form = self._form(domainName="Meera-Realty")
        form["profileImage"] = (io.BytesIO(b"\x89PNG profile"), "me.png", "image/png")
        form["documents"] = (io.BytesIO(b"%PDF-1.4 kyc"), "pan.pdf", "application/pdf")
        res = client.post("/api/agents/register", data=form, content_type="multipart/form-data")
        self.assertEqual(res.status_code, 201, res.get_data(as_text=True))

        agent = res.get_json()["agent"]
        self.assertEqual(agent["status"], "Pending")
        self.assertEqual(agent["domain_name"], "meera-realty")
        self.assertEqual(agent["languages_spoken"], ["English", "Marathi"])
        self.assertIn(f"/api/uploads/{user_id}/agents/profile/profile-", agent["profile_photo_url"])
        self.assertIn(f"/api/uploads/{user_id}/agents/kyc/kyc-", agent["kyc_document_url"])

        with self.app.app_context():
            row = Agent.query.filter_by(user_id=user_id).first()
            self.assertTrue(os.path.isfile(os.path.join(self._uploads.name, row.profile_photo_key)))

        taken = self.app.test_client().get("/api/agents/check-domain?name=meera-realty")
        self.assertEqual(taken.get_json(), {"available": False})

    def test_duplicate_domain_conflicts(self):
        client, _ = self._signed_in_client()
        self.assertEqual(
            client.post("/api/agents/register", data=self._form(domainName="shared-name")).status_code,
            201,
        )
        other, other_id = self._signed_in_client()
        res = other.post("/api/agents/register", data=self._form(domainName="shared-name"))
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.get_json()["error"], "This domain name is already taken")
        with self.app.app_context():
            self.assertIsNone(Agent.query.filter_by(user_id=other_id).first())
            self.assertEqual(AgentDomain.query.filter_by(domain_name="shared-name").count(), 1)

    def test_reserved_domain_and_validation(self):
        client, _ = self._signed_in_client()
        res = client.post("/api/agents/register", data=self._form(domainName="support"))
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["error"], "This domain name is reserved")

        res = client.post("/api/agents/register", data=self._form(fullName="Al"))
        self.assertEqual(res.get_json()["error"], "Full name must be at least 3 characters")

        res = client.post("/api/agents/register", data=self._form(panNumber="12345"))
        self.assertEqual(res.get_json()["error"], "Invalid PAN format (e.g. ABCDE1234F)")

    def test_profile_image_rules(self):
        client, _ = self._signed_in_client()
        form = self._form()
        form["profileImage"] = (io.BytesIO(b"GIF89a"), "me.gif", "image/gif")
        res = client.post("/api/agents/register", data=form, content_type="multipart/form-data")
        self.assertEqual(res.status_code, 400)
        self.assertIn("unsupported type", res.get_json()["error"])

    def test_storage_failure_rolls_back(self):
        client, user_id = self._signed_in_client()
        form = self._form(domainName="rollback-agent")
        form["profileImage"] = (io.BytesIO(b"\x89PNG"), "me.png", "image/png")
        form["documents"] = (io.BytesIO(b"%PDF"), "kyc.pdf", "application/pdf")

        real_put = LocalStorageProvider.put_object
        calls = {"n": 0}

        def flaky_put(provider, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise StorageError("disk full")
            return real_put(provider, **kwargs)

        with patch.object(LocalStorageProvider, "put_object", autospec=True, side_effect=flaky_put):
            res = client.post("/api/agents/register", data=form, content_type="multipart/form-data")

        self.assertEqual(res.status_code, 502)
        manifest = res.get_json()["manifest"]
        self.assertEqual([m["ok"] for m in manifest], [True, False])
        self.assertFalse(os.path.exists(os.path.join(self._uploads.name, manifest[0]["key"])))
        with self.app.app_context():
            self.assertIsNone(Agent.query.filter_by(user_id=user_id).first())
            self.assertIsNone(AgentDomain.query.filter_by(domain_name="rollback-agent").first())

    def test_profile_read_and_update(self):
        client, _ = self._signed_in_client()
        self.assertEqual(client.get("/api/agents/register").status_code, 404)
        client.post("/api/agents/register", data=self._form())
        res = client.put("/api/agents/register", json={"bio": "  Ten years in logistics  ", "experience_years": "7"})
        self.assertEqual(res.status_code, 200)
        agent = res.get_json()["agent"]
        self.assertEqual(agent["bio"], "Ten years in logistics")
        self.assertEqual(agent["experience_years"], 7)


if __name__ == "__main__":
    unittest.main()
