# src/imageproxy/core/parameters.py
"""Parse raw query values into a validated ParameterSet.

Query keys are case-sensitive: img, width, height, ratio, mode, format, quality.
Empty values leave the defaults untouched. Unknown ratio tokens are ignored
rather than rejected.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import PurePosixPath
from urllib.parse import urlsplit

from imageproxy.core.errors import InvalidParameter
from imageproxy.core.models import (
    ASPECT_RATIOS,
    CROP,
    FIT,
    FORMAT_ALIASES,
    ImageFormat,
    ParameterSet,
)

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")

_MODES = {FIT, CROP}

QUERY_KEYS = ("img", "width", "height", "ratio", "mode", "format", "quality")


def format_from_path(img: str) -> ImageFormat:
    """Derive the target format from the extension of the source URL path.

    Raises:
        InvalidParameter: If the extension is missing or not supported.
    """
    try:
        path = urlsplit(img).path
    except ValueError as e:
        raise InvalidParameter("format", f"unparseable source URL: {e}") from e

    extension = PurePosixPath(path).suffix.lstrip(".").lower()
    fmt = FORMAT_ALIASES.get(extension)
    if fmt is None:
        raise InvalidParameter("format", f"unknown file format: {extension!r}")
    return fmt


def _parse_int(field: str, value: str) -> int:
    if not _INT_PATTERN.fullmatch(value):
        raise InvalidParameter(field, f"not an integer: {value!r}")
    return int(value)


def parse_parameters(
    img: str,
    width: str = "",
    height: str = "",
    ratio: str = "",
    mode: str = "",
    format: str = "",  # noqa: A002
    quality: str = "",
) -> ParameterSet:
    """Build a ParameterSet from raw string query values.

    The output format is the explicit ``format`` when given, otherwise it is
    derived from the source path so that a cache address can be computed
    before anything is fetched.

    Raises:
        InvalidParameter: On the first invalid field.
    """
    if not img:
        raise InvalidParameter("img", "source URL is required")

    fields: dict[str, object] = {}

    for name, raw in (("width", width), ("height", height)):
        if raw:
            value = _parse_int(name, raw)
            if value < 0:
                raise InvalidParameter(name, "must be >= 0")
            fields[name] = value

    if format:
        fmt = FORMAT_ALIASES.get(format)
        if fmt is None:
            raise InvalidParameter("format", f"invalid extension: {format}")
        fields["format"] = fmt
    else:
        fields["format"] = format_from_path(img)

    if mode:
        if mode not in _MODES:
            raise InvalidParameter("mode", f"invalid mode: {mode}")
        fields["mode"] = mode

    if quality:
        q = _parse_int("quality", quality)
        if q < 0 or q > 100:
            raise InvalidParameter("quality", f"out of range: {q}")
        fields["quality"] = q

    if ratio in ASPECT_RATIOS:
        fields["ratio"] = ratio

    return ParameterSet(**fields)  # type: ignore[arg-type]


def parse_query(query: Mapping[str, str]) -> tuple[str, ParameterSet]:
    """Parse a query mapping; returns the source URL and its ParameterSet."""
    img = query.get("img", "") or ""
    params = parse_parameters(
        img,
        width=query.get("width", "") or "",
        height=query.get("height", "") or "",
        ratio=query.get("ratio", "") or "",
        mode=query.get("mode", "") or "",
        format=query.get("format", "") or "",
        quality=query.get("quality", "") or "",
    )
    return img, params
