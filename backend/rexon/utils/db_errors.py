"""Map unique-constraint violations to the field that collided.

Constraint names come from the metadata naming convention in
``rexon.extensions`` (``uq_<table>_<column>``). Postgres reports the name via
``diag.constraint_name``; SQLite reports ``UNIQUE constraint failed:
<table>.<column>``. Both are parsed structurally.
"""
from __future__ import annotations

import re

from sqlalchemy.exc import IntegrityError

_SQLITE_UNIQUE_RE = re.compile(r"UNIQUE constraint failed: ([\w.,\s]+)")


def _constraint_name(err: IntegrityError) -> str:
    orig = getattr(err, "orig", None)
    diag = getattr(orig, "diag", None)
    return (getattr(diag, "constraint_name", None) or "").strip()


def conflict_columns(err: IntegrityError, *, table: str) -> set[str]:
    """Columns of ``table`` whose unique constraint rejected the write."""
    name = _constraint_name(err)
    if name:
        prefix = f"uq_{table}_"
        if name.startswith(prefix):
            return {name[len(prefix):]}
        return set()

    match = _SQLITE_UNIQUE_RE.search(str(getattr(err, "orig", err)))
    if not match:
        return set()
    columns = set()
    for part in match.group(1).split(","):
        tbl, _, col = part.strip().partition(".")
        if tbl == table and col:
            columns.add(col)
    return columns


def is_unique_violation(err: IntegrityError) -> bool:
    if _constraint_name(err).startswith("uq_"):
        return True
    if getattr(getattr(err, "orig", None), "pgcode", None) == "23505":
        return True
    return bool(_SQLITE_UNIQUE_RE.search(str(getattr(err, "orig", err))))
