# src/imageproxy/storage/s3_store.py
"""S3-compatible cache store (CACHE_BACKEND=s3).

Supports AWS S3, MinIO, and other S3-compatible storage. The boto3 client is
created once at startup by ``create_s3_client`` and injected; boto3 calls are
blocking and run in worker threads.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from imageproxy.core.errors import NotFound, ReadFailed, WriteFailed
from imageproxy.core.models import CacheAddress
from imageproxy.storage.base_cache_store import BaseCacheStore

if TYPE_CHECKING:
    from imageproxy.config.settings import Settings

logger = logging.getLogger(__name__)

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}

DEFAULT_PUBLIC_HOST = "s3.amazonaws.com"


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code", "")) in _MISSING_CODES


def create_s3_client(settings: Settings) -> Any:
    """Build the boto3 S3 client from settings.

    Credentials come from the default boto3 chain.
    """
    kwargs: dict = {}
    if settings.s3_region:
        kwargs["region_name"] = settings.s3_region
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url
    return boto3.client("s3", **kwargs)


class S3CacheStore(BaseCacheStore):
    """Store artifacts as objects in an S3 bucket."""

    def __init__(
        self,
        client: Any,
        bucket: str,
        prefix: str = "",
        public_host: str = DEFAULT_PUBLIC_HOST,
    ) -> None:
        """Initialize S3 store.

        Args:
            client: boto3 S3 client.
            bucket: S3 bucket name.
            prefix: Key prefix for all objects (e.g. "images/").
            public_host: Host suffix of public object URLs
                (``https://{bucket}.{public_host}/{key}``).
        """
        self._s3 = client
        self._bucket = bucket
        self._prefix = prefix.rstrip("/") + "/" if prefix else ""
        self._public_host = public_host

    @property
    def bucket(self) -> str:
        return self._bucket

    def object_key(self, address: CacheAddress) -> str:
        """Build the full S3 key of an address."""
        return f"{self._prefix}{address.key}"

    async def exists(self, address: CacheAddress) -> bool:
        """Metadata-only existence check (HeadObject)."""
        key = self.object_key(address)
        try:
            await asyncio.to_thread(self._s3.head_object, Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise ReadFailed(key, e) from e
        except BotoCoreError as e:
            raise ReadFailed(key, e) from e
        return True

    async def read(self, address: CacheAddress) -> bytes:
        """Read the object body."""
        key = self.object_key(address)
        try:
            response = await asyncio.to_thread(
                self._s3.get_object, Bucket=self._bucket, Key=key
            )
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            if _is_missing(e):
                raise NotFound(key) from e
            raise ReadFailed(key, e) from e
        except BotoCoreError as e:
            raise ReadFailed(key, e) from e

    async def write(
        self, address: CacheAddress, data: bytes, content_type: str | None = None
    ) -> None:
        """Single atomic PutObject."""
        key = self.object_key(address)
        kwargs: dict = {"Bucket": self._bucket, "Key": key, "Body": data}
        if content_type:
            kwargs["ContentType"] = content_type
        try:
            await asyncio.to_thread(self._s3.put_object, **kwargs)
        except (ClientError, BotoCoreError) as e:
            raise WriteFailed(key, e) from e
        logger.debug("S3 write: s3://%s/%s (%d bytes)", self._bucket, key, len(data))

    def public_url(self, address: CacheAddress) -> str:
        """Public URL of the object."""
        return f"https://{self._bucket}.{self._public_host}/{self.object_key(address)}"
