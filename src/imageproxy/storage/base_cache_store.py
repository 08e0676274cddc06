# src/imageproxy/storage/base_cache_store.py
"""Abstract cache store interface.

Backends: local filesystem (default) and S3-compatible object storage.
The orchestrator only ever talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from imageproxy.core.models import CacheAddress


class BaseCacheStore(ABC):
    """Unified interface for artifact storage backends."""

    @abstractmethod
    async def exists(self, address: CacheAddress) -> bool:
        """Check whether an artifact is stored at ``address``.

        Absence is ``False``, never an error; only genuine I/O failures raise
        ReadFailed.
        """

    @abstractmethod
    async def read(self, address: CacheAddress) -> bytes:
        """Return the artifact bytes (NotFound if absent, ReadFailed on I/O error)."""

    @abstractmethod
    async def write(
        self, address: CacheAddress, data: bytes, content_type: str | None = None
    ) -> None:
        """Persist ``data`` at ``address``, creating intermediate structure.

        A concurrent reader never observes a partially written artifact.
        Raises WriteFailed on I/O error.
        """

    def public_url(self, address: CacheAddress) -> str | None:
        """Publicly reachable URL of the artifact, if the backend has one."""
        return None
