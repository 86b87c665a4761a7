"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from supabase import Client, create_client

from critique.config import get_settings
from critique.db import DbClient, create_db_client
from critique.storage import (
    InMemoryStorageClient,
    LocalStorageClient,
    S3StorageClient,
    StorageClient,
    SupabaseStorageClient,
)

_db_client: DbClient | None = None
_storage_client: StorageClient | None = None
_supabase_client: Client | None = None


def get_supabase_client() -> Client:
    """Shared Supabase client for the database and storage backends."""
    global _supabase_client
    if _supabase_client:
        return _supabase_client

    settings = get_settings()
    if not settings.has_supabase_credentials:
        raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY are required")
    _supabase_client = create_client(settings.supabase_url, settings.supabase_key)
    return _supabase_client


def get_db_client() -> DbClient:
    """
    Return the process-wide DB client. The backend is chosen on first use
    and never changes afterwards.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.resolved_db_backend() == "supabase":
        _db_client = create_db_client(settings, get_supabase_client())
    else:
        _db_client = create_db_client(settings)
    return _db_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    backend = settings.resolved_storage_backend()
    if backend == "memory":
        _storage_client = InMemoryStorageClient()
    elif backend == "supabase":
        _storage_client = SupabaseStorageClient(
            client=get_supabase_client(), bucket=settings.supabase_bucket
        )
    elif backend == "s3":
        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET is required for s3 storage")
        _storage_client = S3StorageClient(
            bucket=settings.s3_bucket,
            region=settings.s3_region or "",
            endpoint=settings.s3_endpoint,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
            public_base_url=settings.s3_public_base_url,
        )
    else:
        _storage_client = LocalStorageClient(
            upload_dir=settings.upload_dir, url_prefix=settings.upload_url_prefix
        )
    return _storage_client
