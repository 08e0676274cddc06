# tests/conftest.py
"""Shared test fixtures for unit and integration tests.

Provides in-memory images, a local cache store in a temp directory, a stub
source server (httpx.MockTransport) and a wired orchestrator.
No network access: all HTTP is mocked.
"""

from __future__ import annotations

import io
from collections.abc import Callable

import httpx
import pytest
import pytest_asyncio
from PIL import Image

from imageproxy.fetch.source_fetcher import SourceFetcher
from imageproxy.proxy.orchestrator import ProxyOrchestrator
from imageproxy.storage.local_store import LocalCacheStore
from imageproxy.transform.engine import TransformEngine


def make_image(
    width: int = 200, height: int = 200, color: tuple = (200, 30, 30), mode: str = "RGB"
) -> Image.Image:
    """Solid-colour test image."""
    if mode == "RGBA" and len(color) == 3:
        color = (*color, 255)
    return Image.new(mode, (width, height), color)


def image_bytes(image: Image.Image, fmt: str = "JPEG") -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt)
    return buf.getvalue()


class SourceServer:
    """Stub origin serving images by URL, counting requests."""

    def __init__(self) -> None:
        self.images: dict[str, bytes] = {}
        self.statuses: dict[str, int] = {}
        self.requests: list[str] = []

    def add(self, url: str, data: bytes, status: int = 200) -> None:
        self.images[url] = data
        self.statuses[url] = status

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.images:
            return httpx.Response(404, content=b"not found")
        return httpx.Response(self.statuses[url], content=self.images[url])


# === FIXTURES: Images ===


@pytest.fixture
def image_factory() -> Callable[..., Image.Image]:
    return make_image


@pytest.fixture
def encode_image() -> Callable[..., bytes]:
    return image_bytes


@pytest.fixture
def square_image() -> Image.Image:
    return make_image(200, 200)


@pytest.fixture
def jpeg_200() -> bytes:
    """200x200 JPEG source."""
    return image_bytes(make_image(200, 200), "JPEG")


@pytest.fixture
def png_factory() -> Callable[[int, int], bytes]:
    def _make(width: int, height: int) -> bytes:
        return image_bytes(make_image(width, height), "PNG")

    return _make


# === FIXTURES: Wiring ===


@pytest.fixture
def source_server() -> SourceServer:
    return SourceServer()


@pytest_asyncio.fixture
async def http_client(source_server: SourceServer):
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(source_server.handler)
    ) as client:
        yield client


@pytest.fixture
def local_store(tmp_path) -> LocalCacheStore:
    return LocalCacheStore(tmp_path / "cache")


@pytest.fixture
def orchestrator(local_store, http_client) -> ProxyOrchestrator:
    return ProxyOrchestrator(
        store=local_store,
        fetcher=SourceFetcher(http_client),
        engine=TransformEngine(),
    )
