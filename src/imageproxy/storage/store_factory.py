# src/imageproxy/storage/store_factory.py
"""Factory: instantiate the cache store from configuration."""

from __future__ import annotations

from typing import Any

from imageproxy.config.settings import Settings
from imageproxy.storage.base_cache_store import BaseCacheStore
from imageproxy.storage.local_store import LocalCacheStore


def create_cache_store(settings: Settings, s3_client: Any = None) -> BaseCacheStore:
    """Create the configured cache store.

    Args:
        settings: Application settings (CACHE_BACKEND env var).
        s3_client: Pre-built boto3 client; built from settings when None.

    Returns:
        BaseCacheStore instance.

    Raises:
        ValueError: If the backend is not supported or incompletely configured.
    """
    if settings.cache_backend == "local":
        return LocalCacheStore(settings.cache_root)

    if settings.cache_backend == "s3":
        from imageproxy.storage.s3_store import S3CacheStore, create_s3_client

        if not settings.s3_bucket:
            raise ValueError("S3_BUCKET must be set when CACHE_BACKEND=s3")
        return S3CacheStore(
            client=s3_client if s3_client is not None else create_s3_client(settings),
            bucket=settings.s3_bucket,
            prefix=settings.s3_prefix,
            public_host=settings.s3_public_host,
        )

    raise ValueError(f"Unsupported cache backend: {settings.cache_backend!r}")
