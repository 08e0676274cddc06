# src/imageproxy/proxy/headers.py
"""Response headers for served artifacts."""

from __future__ import annotations

import io

from PIL import Image, UnidentifiedImageError

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_MAX_AGE = 604800  # 7 days


def sniff_content_type(data: bytes) -> str:
    """Detect the MIME type from the image header bytes."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            fmt = image.format
    except (UnidentifiedImageError, OSError, ValueError):
        return DEFAULT_CONTENT_TYPE
    return Image.MIME.get(fmt or "", DEFAULT_CONTENT_TYPE)


def content_type(fmt: str, data: bytes) -> str:
    """Content type of an artifact; avif is always declared explicitly."""
    if fmt == "avif":
        return "image/avif"
    return sniff_content_type(data)


def image_headers(
    fmt: str, data: bytes, max_age: int = DEFAULT_MAX_AGE
) -> dict[str, str]:
    return {
        "Content-Type": content_type(fmt, data),
        "Cache-Control": f"public, max-age={max_age}",
    }
