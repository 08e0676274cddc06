# src/imageproxy/fetch/source_fetcher.py
"""Download a source image over HTTP and decode it with Pillow."""

from __future__ import annotations

import asyncio
import io
import logging

import httpx
from PIL import Image, UnidentifiedImageError

from imageproxy.core.errors import DecodeFailed, FetchFailed
from imageproxy.core.models import FetchedImage

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "imageproxy",
    "Accept": "image/*,*/*;q=0.8",
}


def create_http_client(timeout: float = 30.0) -> httpx.AsyncClient:
    """Shared async HTTP client for source fetches."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers=DEFAULT_HEADERS,
    )


def decode_image(data: bytes) -> FetchedImage:
    """Decode image bytes fully into memory.

    Raises:
        DecodeFailed: If no codec can decode the body.
    """
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeFailed(e) from e
    codec = (image.format or "").lower()
    return FetchedImage(image=image, codec=codec)


class SourceFetcher:
    """Fetch and decode source images."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch(self, url: str) -> FetchedImage:
        """Retrieve ``url`` and decode the body.

        Raises:
            FetchFailed: On a non-success status or a transport error.
            DecodeFailed: If the body is not a decodable image.
        """
        try:
            response = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Fetch error for %s: %s", url, e)
            raise FetchFailed(None, str(e)) from e

        if not response.is_success:
            logger.error("HTTP error %d fetching %s", response.status_code, url)
            raise FetchFailed(response.status_code)

        logger.info("Fetched %s (%d bytes)", url, len(response.content))
        return await asyncio.to_thread(decode_image, response.content)
