from __future__ import annotations

import importlib
import os
import unittest

SEGMENTS = (
    "segment_auth",
    "segment_customers",
    "segment_agents",
    "segment_warehouses",
    "segment_search",
    "segment_cities",
    "segment_banners",
    "segment_superadmin",
)


class ImportsBootTestCase(unittest.TestCase):
    def test_import_create_app(self):
        module = importlib.import_module("rexon")
        self.assertTrue(callable(getattr(module, "create_app", None)))

    def test_import_segments(self):
        for name in SEGMENTS:
            module = importlib.import_module(f"rexon.segments.{name}")
            self.assertIsNotNone(module)

    def test_every_segment_is_registered(self):
        prev = {k: os.environ.get(k) for k in ("SQLALCHEMY_DATABASE_URI", "DATABASE_URL")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["DATABASE_URL"] = "sqlite:///:memory:"
        try:
            from rexon import create_app

            app = create_app()
        finally:
            for key, value in prev.items():
                if value is None:
                    os.environ.pop(key, None)
                else:
                    os.environ[key] = value
        rules = {rule.rule for rule in app.url_map.iter_rules()}
        for expected in (
            "/api/auth/signup",
            "/api/customers/register",
            "/api/agents/check-domain",
            "/api/upload",
            "/api/warehouse/search-by-bounds",
            "/api/cities",
            "/api/banner-images",
            "/api/superadmin/dashboard",
            "/api/uploads/<path:filename>",
        ):
            self.assertIn(expected, rules)


if __name__ == "__main__":
    unittest.main()
