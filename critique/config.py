"""
Configuration and settings for the critique backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DbBackend = Literal["sqlite", "postgres", "supabase"]
StorageBackend = Literal["local", "s3", "supabase", "memory"]


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Deployment flags
    environment: str = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )
    vercel: Optional[str] = Field(default=None, validation_alias="VERCEL")

    # Database selection. When unset, derived from the flags above.
    db_backend: Optional[DbBackend] = Field(default=None)

    # SQLite
    sqlite_path: str = Field(default="student_images.db")

    # Postgres
    database_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "POSTGRES_URL"),
    )
    database_ssl_mode: Optional[str] = Field(default=None)
    db_pool_size: int = Field(default=5, ge=1)
    db_max_overflow: int = Field(default=0, ge=0)

    # Supabase
    supabase_url: Optional[str] = Field(default=None)
    supabase_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "SUPABASE_KEY"),
    )
    supabase_bucket: str = Field(default="student-images")

    # File storage
    storage_backend: Optional[StorageBackend] = Field(default=None)
    upload_dir: str = Field(default="uploads")
    upload_url_prefix: str = Field(default="/uploads")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)

    # S3-compatible object storage
    s3_bucket: Optional[str] = Field(default=None)
    s3_region: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    s3_public_base_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)

    @property
    def is_production(self) -> bool:
        return bool(self.vercel) or self.environment.lower() == "production"

    @property
    def has_supabase_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def resolved_db_backend(self) -> DbBackend:
        """Pick the database backend for this process."""
        if self.db_backend:
            return self.db_backend
        if self.is_production and self.has_supabase_credentials:
            return "supabase"
        if self.is_production:
            return "postgres"
        return "sqlite"

    def resolved_storage_backend(self) -> StorageBackend:
        """Pick the file storage backend for this process."""
        if self.storage_backend:
            return self.storage_backend
        if self.is_production and self.has_supabase_credentials:
            return "supabase"
        if self.is_production and self.s3_bucket:
            return "s3"
        return "local"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
