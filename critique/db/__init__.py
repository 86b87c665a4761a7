"""
Database layer: one query contract, three backends.

    from critique.db import create_db_client

    db = create_db_client(settings)
    db.initialize()
    result = db.query(
        "SELECT id FROM likes WHERE image_id = $1 AND student_id = $2", [5, "S1"]
    )
    result = db.execute(GetLike(5, "S1"))

The backend is fixed for the lifetime of the client.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from critique.db.base import DbClient, QueryResult, SqlAlchemyDbClient
from critique.db.errors import UnsupportedStatementError, is_unique_violation
from critique.db.postgres import PostgresDbClient
from critique.db.sqlite import SqliteDbClient

if TYPE_CHECKING:
    from supabase import Client

    from critique.config import Settings

__all__ = [
    "create_db_client",
    "DbClient",
    "QueryResult",
    "SqlAlchemyDbClient",
    "SqliteDbClient",
    "PostgresDbClient",
    "UnsupportedStatementError",
    "is_unique_violation",
]


def create_db_client(
    settings: "Settings", supabase_client: Optional["Client"] = None
) -> DbClient:
    """Build the client for the backend ``settings`` selects."""
    backend = settings.resolved_db_backend()

    if backend == "sqlite":
        return SqliteDbClient(settings.sqlite_path)

    if backend == "postgres":
        return PostgresDbClient(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            ssl_mode=settings.database_ssl_mode,
        )

    if backend == "supabase":
        from critique.db.supabase import SupabaseDbClient

        if supabase_client is None:
            raise ValueError("A Supabase client is required for the supabase backend")
        return SupabaseDbClient(supabase_client)

    raise ValueError(f"Unsupported database backend: {backend}")
