# src/imageproxy/logging/handlers.py
"""Size-rotated log file handler.

LOG_ROTATION takes a byte count with an optional unit ("500000", "512KB",
"10MB", "1G"); "0" disables rotation.
"""

from __future__ import annotations

import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

_SIZE_PATTERN = re.compile(r"(\d+)\s*(?:([KMG])B?|B)?", re.IGNORECASE)
_UNIT_SHIFT = {"K": 10, "M": 20, "G": 30}


def parse_size(size_str: str) -> int:
    """Parse a size like '10MB' or '1048576' into bytes."""
    match = _SIZE_PATTERN.fullmatch(size_str.strip())
    if not match:
        raise ValueError(f"Invalid size format: {size_str!r}. Use e.g. '10MB'.")
    count, unit = match.groups()
    return int(count) << _UNIT_SHIFT.get((unit or "").upper(), 0)


def create_rotating_handler(
    log_file: str,
    rotation: str = "10MB",
    retention: int = 30,
) -> RotatingFileHandler:
    """Handler for ``log_file``; the file is opened on the first record.

    Args:
        log_file: Log file path. Parent directories are created.
        rotation: Size that triggers a rollover.
        retention: Rolled-over files kept beside the active one.
    """
    path = Path(log_file).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=parse_size(rotation),
        backupCount=retention,
        encoding="utf-8",
        delay=True,
    )
