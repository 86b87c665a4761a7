"""
Storage abstraction for uploaded images: local disk, S3-compatible object
storage, Supabase storage, and an in-memory implementation for tests.

Upload and delete report failures in their result instead of raising, so a
missing file never blocks the database side of a request.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from supabase import Client

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    success: bool
    url: Optional[str] = None
    filename: Optional[str] = None
    size: int = 0
    error: Optional[str] = None


@dataclass
class DeleteResult:
    success: bool
    error: Optional[str] = None


class StorageClient(Protocol):
    """Defines the operations the API needs from file storage."""

    def upload(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> UploadResult:
        ...

    def delete(self, filename: str) -> DeleteResult:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/uploads"
    stored_objects: dict[str, bytes] = field(default_factory=dict)

    def upload(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> UploadResult:
        self.stored_objects[filename] = data
        return UploadResult(
            success=True,
            url=f"{self.base_url}/{filename}",
            filename=filename,
            size=len(data),
        )

    def delete(self, filename: str) -> DeleteResult:
        if self.stored_objects.pop(filename, None) is None:
            return DeleteResult(success=False, error=f"{filename} not found")
        return DeleteResult(success=True)


@dataclass
class LocalStorageClient:
    """Files in a directory on local disk."""

    upload_dir: str = "uploads"
    url_prefix: str = "/uploads"

    def __post_init__(self):
        os.makedirs(self.upload_dir, exist_ok=True)

    def _path(self, filename: str) -> str:
        return os.path.join(self.upload_dir, os.path.basename(filename))

    def upload(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> UploadResult:
        try:
            with open(self._path(filename), "wb") as f:
                f.write(data)
        except OSError as exc:
            logger.exception("Local upload failed for %s", filename)
            return UploadResult(success=False, error=str(exc))
        return UploadResult(
            success=True,
            url=f"{self.url_prefix.rstrip('/')}/{filename}",
            filename=filename,
            size=len(data),
        )

    def delete(self, filename: str) -> DeleteResult:
        try:
            os.remove(self._path(filename))
        except OSError as exc:
            logger.exception("Local delete failed for %s", filename)
            return DeleteResult(success=False, error=str(exc))
        return DeleteResult(success=True)


@dataclass
class S3StorageClient:
    """
    S3-compatible object storage client with public-read object URLs.
    """

    bucket: str
    region: str
    endpoint: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    public_base_url: str | None = None
    key_prefix: str = "uploads"

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id or None,
            aws_secret_access_key=self.secret_access_key or None,
            config=config,
        )

    def _key(self, filename: str) -> str:
        return f"{self.key_prefix}/{filename}"

    def public_url(self, filename: str) -> str:
        key = self._key(filename)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> UploadResult:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=self._key(filename),
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as exc:
            logger.exception("S3 upload failed for %s", filename)
            return UploadResult(success=False, error=str(exc))
        return UploadResult(
            success=True,
            url=self.public_url(filename),
            filename=filename,
            size=len(data),
        )

    def delete(self, filename: str) -> DeleteResult:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._key(filename))
        except (BotoCoreError, ClientError) as exc:
            logger.exception("S3 delete failed for %s", filename)
            return DeleteResult(success=False, error=str(exc))
        return DeleteResult(success=True)


@dataclass
class SupabaseStorageClient:
    """Objects in a Supabase storage bucket."""

    client: Client
    bucket: str = "student-images"
    key_prefix: str = "uploads"

    def _key(self, filename: str) -> str:
        return f"{self.key_prefix}/{filename}"

    def upload(
        self, data: bytes, filename: str, content_type: str | None = None
    ) -> UploadResult:
        path = self._key(filename)
        bucket = self.client.storage.from_(self.bucket)
        try:
            bucket.upload(
                path,
                data,
                {
                    "content-type": content_type or "application/octet-stream",
                    "cache-control": "3600",
                    "upsert": "false",
                },
            )
            url = bucket.get_public_url(path)
        except Exception as exc:
            logger.exception("Supabase upload failed for %s", filename)
            return UploadResult(success=False, error=str(exc))
        return UploadResult(success=True, url=url, filename=filename, size=len(data))

    def delete(self, filename: str) -> DeleteResult:
        try:
            self.client.storage.from_(self.bucket).remove([self._key(filename)])
        except Exception as exc:
            logger.exception("Supabase delete failed for %s", filename)
            return DeleteResult(success=False, error=str(exc))
        return DeleteResult(success=True)
