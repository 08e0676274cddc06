# src/imageproxy/storage/local_store.py
"""Local filesystem cache store (default CACHE_BACKEND=local).

Artifacts live at ``<base_path>/<address segments...>``. Writes go through a
temporary file in the destination directory that is renamed into place, so
readers see either nothing or the complete artifact.

The sanitized source is one directory name, so it is bound by the
filesystem name limit (255 bytes on common filesystems). A longer source
makes ``exists`` raise ReadFailed (ENAMETOOLONG) and the request fails
uncached; the S3 backend has no such limit below its 1024-byte key size.
"""

from __future__ import annotations

import asyncio
import logging
import os
import stat
import tempfile
from pathlib import Path

from imageproxy.core.errors import NotFound, ReadFailed, WriteFailed
from imageproxy.core.models import CacheAddress
from imageproxy.storage.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)


class LocalCacheStore(BaseCacheStore):
    """Store artifacts as files under a base directory."""

    def __init__(self, base_path: str | Path) -> None:
        """Initialize with the cache root directory.

        Args:
            base_path: Root directory for all artifacts. Created lazily.
        """
        self._base = Path(base_path).expanduser()

    @property
    def base_path(self) -> Path:
        return self._base

    def path_for(self, address: CacheAddress) -> Path:
        """Resolve the file path of an address."""
        return self._base.joinpath(*address.segments)

    async def exists(self, address: CacheAddress) -> bool:
        """Check if the artifact file exists."""
        path = self.path_for(address)
        try:
            return await asyncio.to_thread(_is_file, path)
        except OSError as e:
            raise ReadFailed(address.key, e) from e

    async def read(self, address: CacheAddress) -> bytes:
        """Read the artifact file."""
        path = self.path_for(address)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise NotFound(address.key) from e
        except OSError as e:
            raise ReadFailed(address.key, e) from e

    async def write(
        self, address: CacheAddress, data: bytes, content_type: str | None = None
    ) -> None:
        """Write the artifact file, creating parent directories."""
        path = self.path_for(address)
        try:
            await asyncio.to_thread(_write_replace, path, data)
        except OSError as e:
            raise WriteFailed(address.key, e) from e
        logger.debug("Local write: %s (%d bytes)", path, len(data))


def _is_file(path: Path) -> bool:
    # Only absence is False; other stat errors (ENAMETOOLONG, EACCES) raise.
    try:
        st = path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return False
    return stat.S_ISREG(st.st_mode)


def _write_replace(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
