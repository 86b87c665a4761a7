"""
Errors raised by the database layer and helpers for inspecting store errors.

Constraint violations surface with store-specific shapes: SQLite reports
``SQLITE_CONSTRAINT_UNIQUE``, PostgreSQL SQLSTATE ``23505`` and PostgREST an
``APIError`` carrying the same SQLSTATE in ``code``.
"""

from __future__ import annotations

import sqlite3

UNIQUE_VIOLATION_SQLSTATE = "23505"


class UnsupportedStatementError(Exception):
    """Raised when a backend has no mapping for a typed statement."""

    def __init__(self, statement: object, backend: str):
        super().__init__(
            f"{backend} backend cannot execute {type(statement).__name__}"
        )
        self.statement = statement
        self.backend = backend


def is_unique_violation(exc: BaseException) -> bool:
    """Return True if ``exc`` reports a unique-constraint conflict."""
    # SQLAlchemy wraps the DBAPI error in ``orig``.
    orig = getattr(exc, "orig", None) or exc

    if getattr(orig, "pgcode", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True
    if getattr(orig, "code", None) == UNIQUE_VIOLATION_SQLSTATE:
        return True

    if isinstance(orig, sqlite3.IntegrityError):
        name = getattr(orig, "sqlite_errorname", None)
        if name:
            return name in ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")
        return "UNIQUE constraint failed" in str(orig)
    return False
