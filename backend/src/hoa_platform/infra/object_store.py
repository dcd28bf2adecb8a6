"""Binary object storage for uploaded documents and pictures.

Two backends:
- LocalObjectStore: files under settings.uploads_dir, served by the
  ``/uploads`` static mount in app.main
- S3ObjectStore: boto3 put_object, returns the object's HTTPS URL
"""

import asyncio
import logging
import re
import uuid
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from hoa_platform.app.config import get_settings

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ObjectStoreError(Exception):
    """Raised when an upload cannot be stored."""


def generate_key(folder: str, owner_id: str, filename: str | None) -> str:
    """Build ``<folder>/<owner_id>/<timestamp>-<short uuid>-<safe name>``."""
    original_name = (filename or "file").replace("/", "_").replace("\\", "_")
    safe_name = _UNSAFE_CHARS.sub("_", original_name).strip("._") or "file"
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{folder}/{owner_id}/{stamp}-{uuid.uuid4().hex[:8]}-{safe_name}"


class ObjectStore:
    """Interface: store bytes under a key and return a retrieval URL."""

    async def put(self, data: bytes, key: str, content_type: str | None = None) -> str:
        raise NotImplementedError


class LocalObjectStore(ObjectStore):
    def __init__(self, root: str | Path, url_prefix: str = "/uploads") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    async def put(self, data: bytes, key: str, content_type: str | None = None) -> str:
        path = self.root / key
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise ObjectStoreError(f"Failed to store {key}: {exc}") from exc
        logger.info("Stored %d bytes at %s", len(data), key)
        return f"{self.url_prefix}/{key}"


class S3ObjectStore(ObjectStore):
    def __init__(self, bucket: str, region: str, client=None) -> None:
        self.bucket = bucket
        self.region = region
        self._client = client or boto3.client("s3", region_name=region)

    async def put(self, data: bytes, key: str, content_type: str | None = None) -> str:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            await asyncio.to_thread(
                self._client.put_object, Bucket=self.bucket, Key=key, Body=data, **extra
            )
        except (BotoCoreError, ClientError) as exc:
            raise ObjectStoreError(f"Failed to upload {key} to S3: {exc}") from exc
        logger.info("Uploaded %d bytes to s3://%s/%s", len(data), self.bucket, key)
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"


@lru_cache
def get_object_store() -> ObjectStore:
    """FastAPI dependency: object store selected by settings.object_store_backend."""
    settings = get_settings()
    if settings.object_store_backend == "s3":
        return S3ObjectStore(settings.s3_bucket, settings.s3_region)
    return LocalObjectStore(settings.uploads_dir, settings.uploads_url_prefix)
