# src/imageproxy/core/errors.py
"""Error taxonomy for the proxy core.

Every error carries the HTTP status the outer layer should answer with.
Nothing here is retried internally; retry is the caller's business.
"""

from __future__ import annotations


class ImageProxyError(Exception):
    """Base class for all proxy failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        # Set by the orchestrator to the state the request failed in.
        self.state: str | None = None


class InvalidParameter(ImageProxyError):
    """A request parameter is malformed or out of range."""

    status_code = 400

    def __init__(self, field: str, detail: str = "") -> None:
        self.field = field
        message = f"invalid parameter: {field}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class FetchFailed(ImageProxyError):
    """The source image could not be retrieved.

    ``status`` is the upstream HTTP status, or None when the transport failed
    before a response was received.
    """

    def __init__(self, status: int | None, detail: str = "") -> None:
        self.status = status
        if status is None:
            message = f"error fetching image: {detail or 'transport error'}"
        else:
            message = f"error fetching image: HTTP {status}"
        super().__init__(message)


class DecodeFailed(ImageProxyError):
    """The source body is not an image any supported codec can decode."""

    def __init__(self, cause: Exception | str) -> None:
        self.cause = cause
        super().__init__(f"failed to decode image: {cause}")


class EncodeFailed(ImageProxyError):
    """The encoder rejected the transformed image."""

    def __init__(self, format: str, cause: Exception | str) -> None:  # noqa: A002
        self.format = format
        self.cause = cause
        super().__init__(f"failed to encode image as {format}: {cause}")


class StorageError(ImageProxyError):
    """Base class for cache store failures."""

    def __init__(self, address: str, message: str) -> None:
        self.address = address
        super().__init__(message)


class NotFound(StorageError):
    """No artifact is stored at the address."""

    def __init__(self, address: str) -> None:
        super().__init__(address, f"artifact not found: {address}")


class ReadFailed(StorageError):
    """The store could not be read."""

    def __init__(self, address: str, cause: Exception | str) -> None:
        self.cause = cause
        super().__init__(address, f"error reading {address}: {cause}")


class WriteFailed(StorageError):
    """The store could not be written."""

    def __init__(self, address: str, cause: Exception | str) -> None:
        self.cause = cause
        super().__init__(address, f"error saving {address}: {cause}")
