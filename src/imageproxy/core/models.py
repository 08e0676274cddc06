# src/imageproxy/core/models.py
"""Shared Pydantic domain models: ParameterSet, CacheAddress, Artifact.

No module redefines these types; all imports come from core.models.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from PIL import Image

ResizeMode = Literal["fit", "crop"]
ImageFormat = Literal["jpeg", "png", "webp", "avif"]
RatioToken = Literal["", "16x9", "9x16", "1x1", "4x3", "3x4"]

FIT: ResizeMode = "fit"
CROP: ResizeMode = "crop"

# Accepted `ratio` tokens and their exact value.
ASPECT_RATIOS: dict[str, Fraction] = {
    "16x9": Fraction(16, 9),
    "9x16": Fraction(9, 16),
    "1x1": Fraction(1, 1),
    "4x3": Fraction(4, 3),
    "3x4": Fraction(3, 4),
}

# Accepted `format` tokens mapped onto the canonical format.
FORMAT_ALIASES: dict[str, ImageFormat] = {
    "jpg": "jpeg",
    "jpeg": "jpeg",
    "png": "png",
    "webp": "webp",
    "avif": "avif",
}

_EXTENSIONS: dict[str, str] = {
    "jpeg": "jpg",
    "png": "png",
    "webp": "webp",
    "avif": "avif",
}


def format_extension(fmt: str) -> str:
    """File extension used when naming an artifact of the given format."""
    return _EXTENSIONS.get(fmt, fmt)


class ParameterSet(BaseModel):
    """Validated, canonical description of a requested transformation."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    ratio: RatioToken = ""
    mode: ResizeMode = FIT
    quality: int = Field(default=100, ge=0, le=100)
    format: ImageFormat

    @property
    def aspect_ratio(self) -> Fraction:
        """Exact aspect ratio (width / height), ``Fraction(0)`` when unset."""
        return ASPECT_RATIOS.get(self.ratio, Fraction(0))

    @property
    def effective_quality(self) -> int:
        """Quality handed to the encoder; 0 means "use the default"."""
        return self.quality if self.quality > 0 else 100


class CacheAddress(BaseModel):
    """Deterministic location of a transformed artifact in a cache store."""

    model_config = ConfigDict(frozen=True)

    segments: tuple[str, ...]

    @property
    def key(self) -> str:
        return "/".join(self.segments)

    @property
    def filename(self) -> str:
        return self.segments[-1]

    def __str__(self) -> str:
        return self.key


class Artifact(BaseModel):
    """Encoded output of a transformation."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    format: ImageFormat
    width: int
    height: int


@dataclass
class FetchedImage:
    """Decoded source image plus the codec it was decoded with."""

    image: Image.Image
    codec: str

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size
