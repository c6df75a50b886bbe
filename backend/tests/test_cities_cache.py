from __future__ import annotations

import os
import time
import unittest
from unittest.mock import MagicMock, patch

import requests

from rexon import create_app
from rexon.services.cities_service import CITIES_CACHE_KEY
from rexon.utils.cache_layer import _reset_cache_state_for_tests, cache_stats, get_json, set_json

UPSTREAM = [
    {"name": "Pune", "state": "MH", "latitude": 18.52, "longitude": 73.85},
    {"name": "Mysuru", "state": "KA", "latitude": 12.29, "longitude": 76.63},
]


def _upstream(status: int = 200, payload=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = UPSTREAM if payload is None else payload
    return resp


class CitiesCacheTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.environ.pop(k, None) for k in ("CACHE_REDIS_URL", "REDIS_URL", "ENABLE_CACHE", "SQLALCHEMY_DATABASE_URI", "DATABASE_URL")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["DATABASE_URL"] = "sqlite:///:memory:"
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        cls.client = cls.app.test_client()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
        _reset_cache_state_for_tests()

    def setUp(self):
        _reset_cache_state_for_tests()

    def test_maps_upstream_fields(self):
        with patch("rexon.services.cities_service.requests.get", return_value=_upstream()):
            res = self.client.get("/api/cities")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(
            res.get_json()[0],
            {"id": "Pune-MH-0", "city": "Pune", "stateCode": "MH", "latitude": 18.52, "longitude": 73.85},
        )

    def test_second_call_served_from_cache(self):
        with patch("rexon.services.cities_service.requests.get", return_value=_upstream()) as get:
            self.client.get("/api/cities")
            res = self.client.get("/api/cities")
        self.assertEqual(get.call_count, 1)
        self.assertEqual(len(res.get_json()), 2)
        stats = cache_stats()
        self.assertEqual(stats["backend"], "memory")
        self.assertGreaterEqual(stats["hits"], 1)

    def test_stale_entry_served_when_upstream_fails(self):
        stale_items = [{"id": "Old-XX-0", "city": "Old", "stateCode": "XX", "latitude": None, "longitude": None}]
        set_json(CITIES_CACHE_KEY, {"fetched_at": time.time() - 2 * 24 * 3600, "items": stale_items}, 3600)
        with patch(
            "rexon.services.cities_service.requests.get",
            side_effect=requests.ConnectionError("upstream down"),
        ):
            res = self.client.get("/api/cities")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.get_json(), stale_items)

    def test_stale_entry_refreshed_when_upstream_recovers(self):
        set_json(CITIES_CACHE_KEY, {"fetched_at": 0, "items": [{"city": "Old"}]}, 3600)
        with patch("rexon.services.cities_service.requests.get", return_value=_upstream()):
            res = self.client.get("/api/cities")
        self.assertEqual([c["city"] for c in res.get_json()], ["Pune", "Mysuru"])
        self.assertEqual(len(get_json(CITIES_CACHE_KEY)["items"]), 2)

    def test_failure_without_cache_is_500(self):
        with patch("rexon.services.cities_service.requests.get", return_value=_upstream(status=503)):
            res = self.client.get("/api/cities")
        self.assertEqual(res.status_code, 500)
        body = res.get_json()
        self.assertEqual(body["error"], "Failed to load cities")
        self.assertEqual(body["message"], "API request failed with status 503")
        self.assertIn("timestamp", body)

    def test_non_list_payload_is_rejected(self):
        with patch("rexon.services.cities_service.requests.get", return_value=_upstream(payload={"cities": []})):
            res = self.client.get("/api/cities")
        self.assertEqual(res.status_code, 500)
        self.assertEqual(res.get_json()["message"], "Invalid data format received from API")

    def test_search_bypasses_cache(self):
        with patch("rexon.services.cities_service.requests.get", return_value=_upstream()) as get:
            self.client.get("/api/cities?search=pu")
            self.client.get("/api/cities?search=pu")
        self.assertEqual(get.call_count, 2)
        self.assertEqual(get.call_args.kwargs["params"], {"search": "pu"})
        self.assertIsNone(get_json(CITIES_CACHE_KEY))


if __name__ == "__main__":
    unittest.main()
