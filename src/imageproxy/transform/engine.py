# src/imageproxy/transform/engine.py
"""Transform engine: dimension resolution, resize and encoding.

Resolution runs before any resize:
  1. With an aspect ratio, derive the missing side(s) from it.
  2. A side that is still 0 takes the source's natural size.
  3. Both sides 0 means the image passes through unresized.

Resize modes:
  - crop: center crop to width x height, clipped to the image bounds.
  - fit: Lanczos downscale into width x height, aspect ratio preserved,
    never upscaled.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from fractions import Fraction

from PIL import Image

from imageproxy.core.errors import EncodeFailed
from imageproxy.core.models import CROP, Artifact, ParameterSet

logger = logging.getLogger(__name__)

Encoder = Callable[[Image.Image, int, io.BytesIO], None]


def resolve_dimensions(
    source_size: tuple[int, int], params: ParameterSet
) -> tuple[int, int]:
    """Resolve the target (width, height) for a source of ``source_size``.

    Returns (0, 0) when no resize should happen.
    """
    src_w, src_h = source_size
    width, height = params.width, params.height
    ratio = params.aspect_ratio

    if ratio != 0:
        if width == 0 and height == 0:
            width = src_w
            height = int(Fraction(width) / ratio)
        elif width == 0:
            width = int(height * ratio)
        elif height == 0:
            height = int(Fraction(width) / ratio)

    if width > 0 or height > 0:
        if height == 0:
            height = src_h
        if width == 0:
            width = src_w

    return width, height


def _half(n: int) -> int:
    """Integer half, truncated toward zero."""
    return n // 2 if n >= 0 else -((-n) // 2)


def crop_center(image: Image.Image, width: int, height: int) -> Image.Image:
    """Cut a width x height box from the center of ``image``.

    The box is clipped to the image, so a source smaller than the box yields
    a smaller result.
    """
    src_w, src_h = image.size
    x0 = _half(src_w - width)
    y0 = _half(src_h - height)
    box = (max(x0, 0), max(y0, 0), min(x0 + width, src_w), min(y0 + height, src_h))
    return image.crop(box)


def fit(
    image: Image.Image,
    width: int,
    height: int,
    resample: Image.Resampling = Image.Resampling.LANCZOS,
) -> Image.Image:
    """Scale ``image`` down to fit within width x height."""
    src_w, src_h = image.size
    if src_w <= width and src_h <= height:
        return image.copy()

    src_aspect = src_w / src_h
    if src_aspect > width / height:
        new_w = width
        new_h = int(new_w / src_aspect + 0.5)
    else:
        new_h = height
        new_w = int(new_h * src_aspect + 0.5)

    return _resizable(image).resize((max(new_w, 1), max(new_h, 1)), resample)


def _resizable(image: Image.Image) -> Image.Image:
    # Palette and bilevel images only resize with nearest-neighbour.
    if image.mode in ("1", "P"):
        return image.convert("RGBA" if image.has_transparency_data else "RGB")
    return image


def _rgb_or_rgba(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "RGBA"):
        return image
    if "A" in image.mode or image.has_transparency_data:
        return image.convert("RGBA")
    return image.convert("RGB")


def _encode_jpeg(image: Image.Image, quality: int, buf: io.BytesIO) -> None:
    if image.mode not in ("RGB", "L", "CMYK"):
        image = image.convert("RGB")
    image.save(buf, format="JPEG", quality=quality)


def _encode_png(image: Image.Image, quality: int, buf: io.BytesIO) -> None:
    # PNG is lossless; quality does not apply.
    if image.mode == "CMYK":
        image = image.convert("RGB")
    image.save(buf, format="PNG")


def _encode_webp(image: Image.Image, quality: int, buf: io.BytesIO) -> None:
    _rgb_or_rgba(image).save(
        buf, format="WEBP", lossless=True, quality=quality, exact=True
    )


def _encode_avif(image: Image.Image, quality: int, buf: io.BytesIO) -> None:
    _rgb_or_rgba(image).save(buf, format="AVIF", quality=quality)


_ENCODERS: dict[str, Encoder] = {
    "jpeg": _encode_jpeg,
    "png": _encode_png,
    "webp": _encode_webp,
    "avif": _encode_avif,
}


def encode(image: Image.Image, fmt: str, quality: int) -> bytes:
    """Encode ``image`` as ``fmt``; unknown formats fall back to JPEG.

    Raises:
        EncodeFailed: If the encoder rejects the image.
    """
    encoder = _ENCODERS.get(fmt)
    if encoder is None:
        logger.warning("Unknown output format %r, encoding as jpeg", fmt)
        encoder = _encode_jpeg

    buf = io.BytesIO()
    try:
        encoder(image, quality, buf)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeFailed(fmt, e) from e
    return buf.getvalue()


class TransformEngine:
    """Turn a decoded source image into an encoded artifact."""

    def __init__(
        self, resample: Image.Resampling = Image.Resampling.LANCZOS
    ) -> None:
        self._resample = resample

    def apply(self, image: Image.Image, params: ParameterSet) -> Artifact:
        """Resize and encode ``image`` according to ``params``.

        Neither the source image nor ``params`` is modified.
        """
        width, height = resolve_dimensions(image.size, params)

        if width > 0 and height > 0:
            if params.mode == CROP:
                output = crop_center(image, width, height)
            else:
                output = fit(image, width, height, self._resample)
        else:
            output = image

        logger.debug(
            "Transform %sx%s -> %sx%s (%s, %s)",
            image.width, image.height, output.width, output.height,
            params.mode, params.format,
        )

        data = encode(output, params.format, params.effective_quality)
        return Artifact(
            data=data,
            format=params.format,
            width=output.width,
            height=output.height,
        )
