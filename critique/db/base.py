"""
Shared query contract and the SQLAlchemy-backed base client.

Every backend exposes the same surface:

    query(text, params)   -> QueryResult   canonical SQL, ``$n`` placeholders
    execute(statement)    -> QueryResult   typed statement from ``statements``
    initialize()          -> None          idempotent schema setup
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Sequence

from sqlalchemy import text as sql_text
from sqlalchemy.engine import CursorResult, Engine
from sqlalchemy.exc import SQLAlchemyError

from critique.db.statements import SCHEMA, CreateTable, Statement

logger = logging.getLogger(__name__)

MUTATING_VERBS = ("INSERT", "UPDATE", "DELETE")

# Either a single-quoted literal (left alone) or a ``$n`` placeholder.
_PLACEHOLDER_RE = re.compile(r"'(?:[^']|'')*'|\$(\d+)")
_VERB_RE = re.compile(r"\s*([A-Za-z]+)")


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: Optional[int] = None
    inserted_id: Optional[Any] = None

    def first(self) -> Optional[dict[str, Any]]:
        return self.rows[0] if self.rows else None


class DbClient(Protocol):
    """Interface every database backend implements."""

    backend_name: str

    def query(self, text: str, params: Sequence[Any] = ()) -> QueryResult:
        ...

    def execute(self, statement: Statement) -> QueryResult:
        ...

    def initialize(self) -> None:
        ...


def statement_verb(text: str) -> str:
    """Leading keyword of a statement, upper-cased."""
    match = _VERB_RE.match(text)
    return match.group(1).upper() if match else ""


def bind_placeholders(
    text: str, params: Sequence[Any]
) -> tuple[str, dict[str, Any]]:
    """
    Rewrite ``$n`` placeholders into named binds and key the parameters.

    ``$1`` becomes ``:p1``; SQLAlchemy then renders the driver's own
    paramstyle. Placeholders inside quoted literals are not touched, and
    colons there are escaped so SQLAlchemy keeps them as text.
    """

    def _replace(match: re.Match[str]) -> str:
        index = match.group(1)
        if index is None:
            return match.group(0).replace(":", "\\:")
        return f":p{index}"

    bound = _PLACEHOLDER_RE.sub(_replace, text)
    values = {f"p{i}": value for i, value in enumerate(params, start=1)}
    return bound, values


class SqlAlchemyDbClient:
    """
    Runs canonical statements on a SQLAlchemy engine.

    Each call checks a connection out of the engine's pool inside a
    transaction, runs exactly one statement and returns the connection,
    whether or not the statement succeeded.
    """

    backend_name = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine

    def prepare(self, text: str) -> str:
        """Adapt canonical text to this engine's dialect."""
        return text

    def query(self, text: str, params: Sequence[Any] = ()) -> QueryResult:
        verb = statement_verb(text)
        bound, values = bind_placeholders(self.prepare(text), params)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(sql_text(bound), values)
                rowcount = result.rowcount
                rows = (
                    [dict(row._mapping) for row in result]
                    if result.returns_rows
                    else []
                )
                if verb == "SELECT":
                    return QueryResult(rows=rows, row_count=len(rows))
                if verb in MUTATING_VERBS:
                    # RETURNING cursors may not report a count until drained.
                    row_count = max(rowcount, len(rows))
                    inserted_id = (
                        self.inserted_id(result, rows) if verb == "INSERT" else None
                    )
                    return QueryResult(
                        rows=rows, row_count=row_count, inserted_id=inserted_id
                    )
                return QueryResult(rows=rows, row_count=0)
        except SQLAlchemyError:
            logger.exception("%s query failed: %s", self.backend_name, verb)
            raise

    def inserted_id(self, result: CursorResult, rows: list[dict[str, Any]]) -> Any:
        if rows and "id" in rows[0]:
            return rows[0]["id"]
        return None

    def execute(self, statement: Statement) -> QueryResult:
        return self.query(statement.sql, statement.params)

    def initialize(self) -> None:
        for table in SCHEMA:
            self.execute(CreateTable(table))
        logger.info(
            "%s database initialized (%s)", self.backend_name, ", ".join(SCHEMA)
        )

    def dispose(self) -> None:
        self.engine.dispose()
