# src/imageproxy/api/middleware.py
"""Origin / Referer allowlist filter.

A request passes when its Origin or Referer header is in the allowlist.
An empty allowlist disables the filter. Exempt paths (the health check)
always pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from fastapi import Request
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class OriginFilterMiddleware(BaseHTTPMiddleware):
    """Reject requests whose Origin/Referer is not allowlisted (403)."""

    def __init__(
        self,
        app: ASGIApp,
        allowed_origins: Iterable[str] = (),
        exempt_paths: Iterable[str] = ("/status",),
    ) -> None:
        super().__init__(app)
        self._allowed = frozenset(allowed_origins)
        self._exempt = frozenset(exempt_paths)

    def is_allowed(self, origin: str, referer: str) -> bool:
        if not self._allowed:
            return True
        if origin and origin in self._allowed:
            return True
        return bool(referer) and referer in self._allowed

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self._exempt:
            return await call_next(request)

        origin = request.headers.get("origin", "")
        referer = request.headers.get("referer", "")
        if not self.is_allowed(origin, referer):
            logger.warning("Rejected request from origin=%r referer=%r", origin, referer)
            return PlainTextResponse("Forbidden", status_code=403)

        return await call_next(request)
