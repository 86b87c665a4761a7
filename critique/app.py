"""
FastAPI application entry point for the critique backend.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from critique.config import get_settings
from critique.dependencies import get_db_client
from critique.routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = app.dependency_overrides.get(get_db_client, get_db_client)()
    db.initialize()
    logger.info("Database backend: %s", db.backend_name)
    yield


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    app = FastAPI(title="Classroom Critique Backend", version="0.1.0", lifespan=lifespan)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
