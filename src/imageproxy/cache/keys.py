# src/imageproxy/cache/keys.py
"""Cache address derivation.

An address is a structured path, not a hash:

    <sanitized source>/<mode>/<width>/<height>/<ratio>/<quality>/<name>.<ext>

so two distinct parameter tuples can never collide. Derivation is pure and
stable across processes.
"""

from __future__ import annotations

from fractions import Fraction
from pathlib import PurePosixPath
from urllib.parse import quote, urlsplit

from imageproxy.core.models import CacheAddress, ParameterSet, format_extension

_EMPTY_SEGMENT = "_"

_DEFAULT_STEM = "image"


def sanitize_source(source: str) -> str:
    """Encode a source URL into a single safe path segment.

    Every reserved character, including "/" and ":", is percent-encoded, so
    the mapping is one-to-one and the result never contains a separator.
    """
    escaped = quote(source, safe="")
    # "." and ".." would be resolved as directory references.
    if not escaped.strip("."):
        escaped = escaped.replace(".", "%2E") or _EMPTY_SEGMENT
    return escaped


def render_ratio(ratio: Fraction) -> str:
    """Fixed decimal rendering of an aspect ratio ("0" when unset)."""
    return format(float(ratio), ".7g")


def artifact_filename(source: str, fmt: str) -> str:
    """Base name of the source with the target format's extension."""
    try:
        path = urlsplit(source).path
    except ValueError:
        path = source
    stem = PurePosixPath(path).stem or _DEFAULT_STEM
    return f"{stem}.{format_extension(fmt)}"


def derive_cache_address(source: str, params: ParameterSet) -> CacheAddress:
    """Compute the cache address of ``source`` transformed by ``params``."""
    return CacheAddress(
        segments=(
            sanitize_source(source),
            params.mode,
            str(params.width),
            str(params.height),
            render_ratio(params.aspect_ratio),
            str(params.quality),
            artifact_filename(source, params.format),
        )
    )
