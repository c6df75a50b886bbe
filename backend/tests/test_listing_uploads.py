from __future__ import annotations

import io
import json
import os
import tempfile
import unittest
from itertools import count
from unittest.mock import patch

from rexon import create_app
from rexon.extensions import db
from rexon.integrations.storage.base import StorageError
from rexon.integrations.storage.local_provider import LocalStorageProvider
from rexon.models import Upload, Warehouse

_seq = count(1)


def _png(name: str):
    return (io.BytesIO(b"\x89PNG\r\n" + name.encode()), name, "image/png")


def _listing_form(**overrides) -> dict:
    form = {
        "title": "Whitefield Logistics Park",
        "propertyType": "Cold Storage",
        "totalArea": "12000",
        "availableFrom": "2026-11-01",
        "listingType": "rent",
        "pricePerSqFt": "22.5",
        "address": "Survey 41, ITPL Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "roadConnectivity": "Main Road",
        "amenities": json.dumps(["CCTV", "Loading dock"]),
    }
    form.update(overrides)
    return form


class ListingUploadsTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        cls._prev_db_url = os.getenv("DATABASE_URL")
        db_uri = "sqlite:///:memory:"
        os.environ["SQLALCHEMY_DATABASE_URI"] = db_uri
        os.environ["DATABASE_URL"] = db_uri
        cls._uploads = tempfile.TemporaryDirectory()
        cls.app = create_app()
        cls.app.config.update(TESTING=True, UPLOAD_DIR=cls._uploads.name, STORAGE_BACKEND="local")
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
            json={"firstName": "Owner", "lastName": str(n), "email": f"owner{n}@example.com", "password": "Secret123"},
        )
        self.assertEqual(res.status_code, 201)
        return client, res.get_json()["user"]["id"]

    def _create(self, client, images=("a.png", "b.png"), **overrides):
        form = _listing_form(**overrides)
        form["images"] = [_png(name) for name in images]
        return client.post("/api/upload", data=form, content_type="multipart/form-data")

    def _stored_files(self, user_id: int) -> list[str]:
        root = os.path.join(self._uploads.name, str(user_id))
        found = []
        for dirpath, _dirs, files in os.walk(root):
            found.extend(os.path.join(dirpath, f) for f in files)
        return found

    def test_requires_session(self):
        res = self._create(self.app.test_client())
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.get_json()["error"], "Unauthorized. Please sign in.")

    def test_create_listing_normalizes_and_stores_images(self):
        client, user_id = self._signed_in_client()
        res = self._create(client)
        self.assertEqual(res.status_code, 201, res.get_data(as_text=True))
        body = res.get_json()

        warehouse = body["warehouse"]
        self.assertEqual(warehouse["status"], "Pending")
        self.assertEqual(warehouse["property_type"], "Warehouse")
        self.assertEqual(warehouse["price_type"], "Rent")
        self.assertEqual(warehouse["road_connectivity"], "City Road")
        self.assertEqual(warehouse["warehouse_size"], 12000)
        self.assertEqual(warehouse["amenities"], ["CCTV", "Loading dock"])

        images = body["images"]
        self.assertEqual([img["file_name"] for img in images], ["a.png", "b.png"])
        self.assertEqual([img["is_primary"] for img in images], [True, False])
        self.assertEqual([img["image_order"] for img in images], [0, 1])
        prefix = f"{user_id}/warehouses/{body['propertyId']}/images/"
        self.assertTrue(all(img["key"].startswith(prefix) for img in images))
        self.assertEqual(len(self._stored_files(user_id)), 2)

        served = client.get(f"/api/uploads/{images[0]['key']}")
        self.assertEqual(served.status_code, 200)
        self.assertTrue(served.data.startswith(b"\x89PNG"))
        served.close()

    def test_create_requires_fields_and_image(self):
        client, _ = self._signed_in_client()
        res = self._create(client, city="")
        self.assertEqual(res.status_code, 400)
        self.assertIn("Please fill in all required fields", res.get_json()["error"])

        res = self._create(client, images=())
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.get_json()["error"], "At least one property image is required")

        res = self._create(client, totalArea="-5")
        self.assertEqual(res.get_json()["error"], "Total area must be a positive number")

        res = self._create(client, latitude="95", longitude="77")
        self.assertEqual(res.get_json()["error"], "Invalid coordinate values")

    def test_rejects_unsupported_image_type(self):
        client, _ = self._signed_in_client()
        form = _listing_form()
        form["images"] = [(io.BytesIO(b"%PDF"), "brochure.pdf", "application/pdf")]
        res = client.post("/api/upload", data=form, content_type="multipart/form-data")
        self.assertEqual(res.status_code, 400)
        self.assertIn("unsupported type", res.get_json()["error"])

    def test_upload_failure_rolls_back_everything(self):
        client, user_id = self._signed_in_client()
        real_put = LocalStorageProvider.put_object
        calls = {"n": 0}

        def flaky_put(provider, **kwargs):
            calls["n"] += 1
            if calls["n"] == 2:
                raise StorageError("bucket unavailable")
            return real_put(provider, **kwargs)

        with patch.object(LocalStorageProvider, "put_object", autospec=True, side_effect=flaky_put):
            res = self._create(client, images=("one.png", "two.png", "three.png"))

        self.assertEqual(res.status_code, 502)
        body = res.get_json()
        self.assertFalse(body["success"])
        self.assertEqual([m["ok"] for m in body["manifest"]], [True, False, True])
        self.assertEqual(body["manifest"][1]["file_name"], "two.png")
        self.assertEqual(self._stored_files(user_id), [])
        with self.app.app_context():
            self.assertEqual(Warehouse.query.filter_by(user_id=user_id).count(), 0)
            self.assertEqual(Upload.query.filter_by(user_id=user_id).count(), 0)

    def test_patch_resets_status_and_soft_deletes(self):
        client, user_id = self._signed_in_client()
        created = self._create(client).get_json()
        warehouse_id = created["propertyId"]
        first_image_id = created["images"][0]["id"]

        with self.app.app_context():
            row = db.session.get(Warehouse, warehouse_id)
            row.status = "Active"
            row.is_verified = True
            db.session.commit()

        form = _listing_form(title="Whitefield Park Phase 2", propertyType="Industrial Shed")
        form["deletedImageIds"] = json.dumps([first_image_id])
        form["newImages"] = [_png("c.png")]
        form["newVideos"] = [(io.BytesIO(b"\x00\x00\x00\x18ftyp"), "tour.mp4", "video/mp4")]
        res = client.patch(f"/api/properties/{warehouse_id}", data=form, content_type="multipart/form-data")
        self.assertEqual(res.status_code, 200, res.get_data(as_text=True))

        prop = res.get_json()["property"]
        self.assertEqual(prop["status"], "Pending")
        self.assertFalse(prop["is_verified"])
        self.assertEqual(prop["title"], "Whitefield Park Phase 2")
        self.assertEqual(prop["property_type"], "Industrial")
        self.assertEqual([img["file_name"] for img in prop["images"]], ["c.png", "b.png"])
        self.assertTrue(prop["images"][0]["is_primary"])
        self.assertEqual(prop["images"][0]["image_order"], 2)
        self.assertEqual([v["file_name"] for v in prop["videos"]], ["tour.mp4"])
        self.assertEqual(prop["videos"][0]["image_order"], 0)

        with self.app.app_context():
            deleted = db.session.get(Upload, first_image_id)
            self.assertEqual(deleted.status, "Deleted")

    def test_patch_rejects_bad_deleted_ids(self):
        client, _ = self._signed_in_client()
        warehouse_id = self._create(client).get_json()["propertyId"]
        form = _listing_form()
        form["deletedImageIds"] = "not json"
        res = client.patch(f"/api/properties/{warehouse_id}", data=form, content_type="multipart/form-data")
        self.assertEqual(res.status_code, 400)

    def test_non_owner_cannot_read_or_edit(self):
        owner, _ = self._signed_in_client()
        warehouse_id = self._create(owner).get_json()["propertyId"]
        stranger, _ = self._signed_in_client()

        res = stranger.get(f"/api/properties/{warehouse_id}")
        self.assertEqual(res.status_code, 404)
        res = stranger.patch(f"/api/properties/{warehouse_id}", data=_listing_form(), content_type="multipart/form-data")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.get_json()["error"], "Property not found or access denied")

    def test_owner_listing_views(self):
        client, _ = self._signed_in_client()
        self._create(client, title="First")
        self._create(client, title="Second")

        mine = client.get("/api/upload").get_json()
        self.assertEqual(mine["count"], 2)
        self.assertTrue(all(len(p["images"]) == 2 for p in mine["properties"]))

        listings = client.get("/api/listings")
        self.assertEqual(listings.get_json()["count"], 2)
        self.assertIn("no-store", listings.headers["Cache-Control"])


if __name__ == "__main__":
    unittest.main()
