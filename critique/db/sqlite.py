"""
SQLite client: emulates the canonical PostgreSQL dialect on an embedded file.

The rewrite is textual and only covers the constrained statement subset the
application issues. Foreign keys are stripped, so reviews and likes that
point at a missing submission are not rejected in this mode.
"""

from __future__ import annotations

import logging
import os
import re
from functools import lru_cache
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import CursorResult
from sqlalchemy.pool import StaticPool

from critique.db.base import SqlAlchemyDbClient

logger = logging.getLogger(__name__)

_REWRITES: tuple[tuple[re.Pattern[str], str], ...] = (
    (
        re.compile(r"\bSERIAL\s+PRIMARY\s+KEY\b", re.IGNORECASE),
        "INTEGER PRIMARY KEY AUTOINCREMENT",
    ),
    (
        re.compile(r"\bTIMESTAMP\s+DEFAULT\s+CURRENT_TIMESTAMP\b", re.IGNORECASE),
        "DATETIME DEFAULT CURRENT_TIMESTAMP",
    ),
    (re.compile(r"\bVARCHAR\s*\(\s*\d+\s*\)", re.IGNORECASE), "TEXT"),
    (re.compile(r"\s+REFERENCES\s+\w+\s*\(\s*\w+\s*\)", re.IGNORECASE), ""),
)


@lru_cache(maxsize=256)
def translate_to_sqlite(text: str) -> str:
    """Rewrite PostgreSQL-only type and key syntax into SQLite syntax."""
    for pattern, replacement in _REWRITES:
        text = pattern.sub(replacement, text)
    return text


class SqliteDbClient(SqlAlchemyDbClient):
    """SQLite file (or ``:memory:``) through SQLAlchemy."""

    backend_name = "sqlite"

    def __init__(self, db_path: str):
        if not db_path:
            raise ValueError("SqliteDbClient requires 'db_path'")
        self.db_path = db_path
        if db_path == ":memory:":
            # One shared connection, otherwise each pooled connection would
            # see its own empty database.
            engine = create_engine(
                "sqlite+pysqlite:///:memory:",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            directory = os.path.dirname(os.path.abspath(db_path))
            os.makedirs(directory, exist_ok=True)
            engine = create_engine(
                f"sqlite+pysqlite:///{db_path}",
                connect_args={"check_same_thread": False},
            )
        super().__init__(engine)

    def prepare(self, text: str) -> str:
        return translate_to_sqlite(text)

    def inserted_id(self, result: CursorResult, rows: list[dict[str, Any]]) -> Any:
        if rows and "id" in rows[0]:
            return rows[0]["id"]
        return result.lastrowid

    def __repr__(self):
        return f"<SqliteDbClient {self.db_path}>"
