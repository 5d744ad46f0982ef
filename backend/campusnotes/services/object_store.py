"""
CampusNotes Backend: Object Store Gateway
===========================================

What:  Issues time-limited upload/download URLs for note files and deletes
       files by key.
Why:   Note bytes never pass through the API on upload: browsers PUT straight
       to the bucket with a presigned URL, and readers GET with another one.
       The API only ever handles keys.
How:   `ObjectStoreGateway` is the interface the services depend on;
       `S3ObjectStore` implements it with boto3. boto3 is synchronous, so every
       network call runs in a worker thread (`asyncio.to_thread`) to keep the
       event loop free.

Consistency Model:
    The object store is not transactional and is treated as best-effort.
    Services delete blobs only after the metadata referencing them has been
    committed away, so the store may hold orphaned blobs after a crash but
    metadata never references a missing blob.

Key Format:
    uploads/{unix_millis}_{original_name}
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from campusnotes.config import settings
from campusnotes.exceptions import ObjectStoreError

logger = logging.getLogger(__name__)


def build_upload_key(original_name: str, now_ms: Optional[int] = None) -> str:
    """
    Key for a new upload: `uploads/{timestamp}_{originalName}`.

    Path separators in the client-supplied name are flattened so the key stays
    inside the uploads/ prefix.
    """
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    safe_name = original_name.replace("\\", "_").replace("/", "_").strip() or "file"
    return f"uploads/{stamp}_{safe_name}"


class ObjectStoreGateway(ABC):
    """
    Interface every object store backend implements.

    All methods are coroutines; each call is a suspension point.
    """

    @abstractmethod
    async def issue_upload_location(self, key: str, content_type: str) -> str:
        """Presigned URL a client can PUT the file body to."""

    @abstractmethod
    async def issue_download_location(self, key: str) -> str:
        """Presigned URL a client (or the archive engine) can GET the file from."""

    @abstractmethod
    async def delete_object(self, key: str) -> None:
        """Remove one object. Raises ObjectStoreError on failure."""

    @abstractmethod
    async def health_check(self) -> bool:
        """True when the bucket is reachable with the configured credentials."""


class S3ObjectStore(ObjectStoreGateway):
    """
    Amazon S3 (or S3-compatible) backend.

    The boto3 client is created on first use so importing the application
    does not require AWS credentials (tests, migrations, health probes).
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        expires_in: Optional[int] = None,
        client: Any = None,
    ):
        self.bucket = bucket if bucket is not None else settings.s3_bucket_name
        self.region = region or settings.aws_region
        self.endpoint_url = endpoint_url if endpoint_url is not None else settings.s3_endpoint_url
        self.expires_in = expires_in or settings.presigned_url_expiry
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            kwargs: Dict[str, Any] = {
                "region_name": self.region,
                "config": BotoConfig(signature_version="s3v4", retries={"max_attempts": 1}),
            }
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            if settings.aws_access_key_id and settings.aws_secret_access_key:
                kwargs["aws_access_key_id"] = settings.aws_access_key_id
                kwargs["aws_secret_access_key"] = settings.aws_secret_access_key
            self._client = boto3.client("s3", **kwargs)
            logger.info("S3 client initialized for bucket=%s region=%s", self.bucket, self.region)
        return self._client

    async def _presign(self, operation: str, params: Dict[str, Any]) -> str:
        try:
            return await asyncio.to_thread(
                self.client.generate_presigned_url,
                operation,
                Params={"Bucket": self.bucket, **params},
                ExpiresIn=self.expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(
                key=params.get("Key"),
                context={"operation": operation, "error": str(e)},
            )

    async def issue_upload_location(self, key: str, content_type: str) -> str:
        return await self._presign("put_object", {"Key": key, "ContentType": content_type})

    async def issue_download_location(self, key: str) -> str:
        return await self._presign("get_object", {"Key": key})

    async def delete_object(self, key: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(
                key=key,
                context={"operation": "delete_object", "error": str(e)},
            )
        logger.debug("Deleted object %s", key)

    async def health_check(self) -> bool:
        if not self.bucket:
            return False
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning("Object store health check failed: %s", str(e))
            return False


async def delete_objects_best_effort(store: ObjectStoreGateway, keys) -> int:
    """
    Delete every key independently; never raise.

    What:    Runs one delete per key concurrently and logs each failure.
    When:    Only after the metadata that referenced these keys is committed
             away. At that point the metadata is final, so a failed blob
             delete leaves an orphaned blob, which is harmless and sweepable.
    Returns: Number of keys whose deletion failed.
    """
    keys = [k for k in keys if k]
    if not keys:
        return 0

    results = await asyncio.gather(
        *(store.delete_object(key) for key in keys),
        return_exceptions=True,
    )

    failures = 0
    for key, result in zip(keys, results):
        if isinstance(result, Exception):
            failures += 1
            logger.error(
                "Blob deletion failed for key=%s (metadata already removed): %s",
                key,
                getattr(result, "context", None) or str(result),
            )
    if failures:
        logger.warning("%d of %d blob deletions failed", failures, len(keys))
    return failures


object_store = S3ObjectStore()
