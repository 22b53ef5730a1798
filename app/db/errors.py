"""Storage-layer error classification.

Services ask one question of a failed write: "was this a unique-constraint
violation, and on which constraint?". PostgreSQL answers it from the driver's
diagnostics; SQLite only reports table and columns, which are mapped back onto
the unique indexes/constraints declared in the metadata.
"""
from __future__ import annotations

import re

from sqlalchemy import Index, UniqueConstraint
from sqlalchemy.exc import IntegrityError

from app.db.base import Base

PG_UNIQUE_VIOLATION = "23505"

_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<cols>.+)$")


class UniqueViolation(Exception):
    def __init__(self, constraint: str | None, table: str | None = None):
        super().__init__(f"unique constraint violated: {constraint or 'unknown'}")
        self.constraint = constraint
        self.table = table


def _declared_unique_name(table_name: str, columns: tuple[str, ...]) -> str | None:
    table = Base.metadata.tables.get(table_name)
    if table is None:
        return None
    wanted = set(columns)
    for idx in table.indexes:
        if isinstance(idx, Index) and idx.unique and {c.name for c in idx.columns} == wanted:
            return idx.name
    for cons in table.constraints:
        if isinstance(cons, UniqueConstraint) and {c.name for c in cons.columns} == wanted:
            return cons.name
    return None


def as_unique_violation(exc: IntegrityError) -> UniqueViolation | None:
    """Return a UniqueViolation for `exc`, or None if it is another integrity error."""
    orig = getattr(exc, "orig", None)

    # psycopg2 / psycopg 3
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode is not None:
        if pgcode != PG_UNIQUE_VIOLATION:
            return None
        diag = getattr(orig, "diag", None)
        return UniqueViolation(
            getattr(diag, "constraint_name", None),
            getattr(diag, "table_name", None),
        )

    # sqlite3: "UNIQUE constraint failed: working_paper.period_id, working_paper.code"
    m = _SQLITE_UNIQUE.search(str(orig if orig is not None else exc))
    if not m:
        return None
    qualified = [c.strip() for c in m.group("cols").split(",")]
    tables = {q.split(".", 1)[0] for q in qualified if "." in q}
    if len(tables) != 1:
        return UniqueViolation(None)
    table = tables.pop()
    columns = tuple(q.split(".", 1)[1] for q in qualified)
    return UniqueViolation(_declared_unique_name(table, columns), table)
