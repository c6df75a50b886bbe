from __future__ import annotations

import unittest
from types import SimpleNamespace

from sqlalchemy.exc import IntegrityError

from rexon.utils.db_errors import conflict_columns, is_unique_violation


class _PgError(Exception):
    def __init__(self, constraint_name: str, pgcode: str = "23505"):
        super().__init__("duplicate key value violates unique constraint")
        self.diag = SimpleNamespace(constraint_name=constraint_name)
        self.pgcode = pgcode


def _integrity(orig: Exception) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, orig)


class DbErrorsTestCase(unittest.TestCase):
    def test_postgres_constraint_name(self):
        err = _integrity(_PgError("uq_customers_mobile_number"))
        self.assertEqual(conflict_columns(err, table="customers"), {"mobile_number"})
        self.assertEqual(conflict_columns(err, table="agents"), set())
        self.assertTrue(is_unique_violation(err))

    def test_sqlite_message(self):
        err = _integrity(Exception("UNIQUE constraint failed: agent_domains.domain_name"))
        self.assertEqual(conflict_columns(err, table="agent_domains"), {"domain_name"})
        self.assertEqual(conflict_columns(err, table="agents"), set())
        self.assertTrue(is_unique_violation(err))

    def test_sqlite_composite(self):
        err = _integrity(Exception("UNIQUE constraint failed: agents.email, agents.mobile_number"))
        self.assertEqual(conflict_columns(err, table="agents"), {"email", "mobile_number"})

    def test_unrelated_text_is_not_a_conflict(self):
        err = _integrity(Exception("NOT NULL constraint failed: agents.email"))
        self.assertEqual(conflict_columns(err, table="agents"), set())
        self.assertFalse(is_unique_violation(err))


if __name__ == "__main__":
    unittest.main()
