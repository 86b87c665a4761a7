"""
PostgreSQL client: canonical statements run as written on a pooled engine.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from critique.db.base import SqlAlchemyDbClient

logger = logging.getLogger(__name__)

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


def normalize_database_url(url: str) -> str:
    """Map ``postgres://`` style URLs onto the psycopg2 driver."""
    scheme, sep, rest = url.partition("://")
    if not sep:
        raise ValueError(f"Not a database URL: {url!r}")
    if scheme in ("postgres", "postgresql"):
        return f"postgresql+psycopg2://{rest}"
    return url


def ssl_connect_args(url: str, ssl_mode: Optional[str] = None) -> dict[str, Any]:
    """
    Driver TLS settings for ``url``.

    An explicit ``sslmode`` in the URL wins, then ``ssl_mode``; otherwise TLS
    is off for local servers and required (without verification) elsewhere.
    """
    parts = urlsplit(url)
    if "sslmode" in parse_qs(parts.query):
        return {}
    if ssl_mode:
        return {"sslmode": ssl_mode}
    if parts.hostname in _LOCAL_HOSTS:
        return {"sslmode": "disable"}
    return {"sslmode": "require"}


class PostgresDbClient(SqlAlchemyDbClient):
    """PostgreSQL through a SQLAlchemy connection pool."""

    backend_name = "postgres"

    def __init__(
        self,
        database_url: Optional[str] = None,
        *,
        pool_size: int = 5,
        max_overflow: int = 0,
        ssl_mode: Optional[str] = None,
        engine: Optional[Engine] = None,
    ):
        if engine is None:
            if not database_url:
                raise ValueError("DATABASE_URL is required for PostgresDbClient")
            url = normalize_database_url(database_url)
            engine = create_engine(
                url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
                connect_args=ssl_connect_args(url, ssl_mode),
            )
        super().__init__(engine)

    def __repr__(self):
        return f"<PostgresDbClient {self.engine.url.render_as_string(hide_password=True)}>"
