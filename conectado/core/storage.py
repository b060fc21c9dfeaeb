"""Attachment storage.

Message attachments are written once and never modified. Keys have the form
``{folder}/{unique filename}``; the original file name is kept on the message
row, not in the key.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from conectado.core.config import settings

logger = logging.getLogger(__name__)

PRESIGNED_URL_TTL_SECONDS = 3600


class StorageBackend(Protocol):
    def upload(
        self, file_content: bytes, folder: str, filename: str, content_type: str | None = None
    ) -> str:
        """Store the file and return its key."""
        ...

    def download_url(self, path: str) -> str:
        ...

    def delete(self, path: str) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...


class LocalStorage:
    """Files under ``base_dir``, served by the ``/uploads`` static mount."""

    def __init__(self, base_dir: str) -> None:
        self._base_dir = Path(base_dir)

    def upload(
        self, file_content: bytes, folder: str, filename: str, content_type: str | None = None
    ) -> str:
        key = f"{folder}/{filename}"
        full_path = self._resolve_safe_path(key)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(file_content)
        logger.debug("Stored %d bytes at %s", len(file_content), key)
        return key

    def download_url(self, path: str) -> str:
        return f"{settings.BACKEND_URL}/uploads/{quote(path)}"

    def _resolve_safe_path(self, path: str) -> Path:
        """Resolve ``path`` under the base directory, refusing anything outside it."""
        base_resolved = self._base_dir.resolve()
        full_path = (self._base_dir / path).resolve()
        if (
            not str(full_path).startswith(str(base_resolved) + os.sep)
            and full_path != base_resolved
        ):
            raise ValueError(f"Path traversal attempt detected: {path}")
        return full_path

    def delete(self, path: str) -> None:
        self._resolve_safe_path(path).unlink(missing_ok=True)

    def exists(self, path: str) -> bool:
        return self._resolve_safe_path(path).exists()


class S3Storage:
    """Any S3-compatible bucket. Without a public URL, links are presigned."""

    def __init__(self) -> None:
        self._client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL or None,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID or None,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY or None,
            config=BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )
        self._bucket = settings.S3_BUCKET_NAME

    def upload(
        self, file_content: bytes, folder: str, filename: str, content_type: str | None = None
    ) -> str:
        key = f"{folder}/{filename}"
        extra = {"ContentType": content_type} if content_type else {}
        self._client.put_object(Bucket=self._bucket, Key=key, Body=file_content, **extra)
        logger.debug("Uploaded %d bytes to s3://%s/%s", len(file_content), self._bucket, key)
        return key

    def download_url(self, path: str) -> str:
        if settings.S3_PUBLIC_URL:
            return f"{settings.S3_PUBLIC_URL.rstrip('/')}/{quote(path)}"
        url: str = self._client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self._bucket, "Key": path},
            ExpiresIn=PRESIGNED_URL_TTL_SECONDS,
        )
        return url

    def delete(self, path: str) -> None:
        self._client.delete_object(Bucket=self._bucket, Key=path)

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self._bucket, Key=path)
        except ClientError:
            return False
        return True


def get_storage() -> StorageBackend:
    if settings.STORAGE_BACKEND == "s3":
        return S3Storage()
    return LocalStorage(settings.UPLOAD_DIR)


def generate_unique_filename(original_filename: str) -> str:
    """Random name that keeps the lower-cased extension of the uploaded file."""
    return f"{uuid.uuid4().hex}{Path(original_filename).suffix.lower()}"
