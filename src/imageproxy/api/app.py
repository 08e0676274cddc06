# src/imageproxy/api/app.py
"""HTTP surface: the proxy endpoint and the health check.

Usage:
    from imageproxy.api.app import create_app
    app = create_app(load_settings())

Endpoints:
    GET /proxy?img=<url>&width=&height=&ratio=&mode=&format=&quality=
    GET /status
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from imageproxy.api.middleware import OriginFilterMiddleware
from imageproxy.config.settings import Settings, load_settings
from imageproxy.core.errors import ImageProxyError
from imageproxy.fetch.source_fetcher import SourceFetcher, create_http_client
from imageproxy.logging.context import clear_context, set_request_context
from imageproxy.proxy.orchestrator import ProxyOrchestrator
from imageproxy.storage.store_factory import create_cache_store
from imageproxy.transform.engine import TransformEngine
from imageproxy.version import __version__

logger = logging.getLogger(__name__)


def build_orchestrator(settings: Settings, http_client=None) -> ProxyOrchestrator:
    """Wire store, fetcher and engine from settings (called once at startup)."""
    if http_client is None:
        http_client = create_http_client(settings.fetch_timeout)
    return ProxyOrchestrator(
        store=create_cache_store(settings),
        fetcher=SourceFetcher(http_client),
        engine=TransformEngine(),
        cache_max_age=settings.cache_max_age,
        redirect_on_hit=settings.s3_redirect_on_hit,
    )


def create_app(
    settings: Settings | None = None,
    orchestrator: ProxyOrchestrator | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings. Loaded from the env file if None.
        orchestrator: Pre-built orchestrator (tests); built at startup if None.
    """
    settings = settings or load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if orchestrator is not None:
            app.state.orchestrator = orchestrator
            yield
            return

        http_client = create_http_client(settings.fetch_timeout)
        app.state.orchestrator = build_orchestrator(settings, http_client)
        if settings.cache_backend == "local":
            logger.info("Images will be saved to %s", settings.cache_root)
        else:
            logger.info("Images will be saved to bucket %s", settings.s3_bucket)
        try:
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(title="imageproxy", version=__version__, lifespan=lifespan)
    app.add_middleware(
        OriginFilterMiddleware, allowed_origins=settings.allowed_origins_list
    )
    if settings.allowed_origins_list:
        logger.info("Allowed origins: %s", ", ".join(settings.allowed_origins_list))

    @app.get("/status")
    async def status() -> PlainTextResponse:
        """Health check."""
        return PlainTextResponse("OK")

    @app.get("/proxy")
    async def proxy(request: Request) -> Response:
        """Serve a transformed image, computing and caching it on a miss."""
        set_request_context(request.headers.get("x-request-id"))
        try:
            result = await request.app.state.orchestrator.handle(
                dict(request.query_params)
            )
        except ImageProxyError as e:
            return PlainTextResponse(str(e), status_code=e.status_code)
        except Exception as e:
            logger.exception("Unhandled error serving %s", request.url)
            return PlainTextResponse(f"internal error: {e}", status_code=500)
        finally:
            clear_context()

        if result.is_redirect:
            return RedirectResponse(result.redirect_url, status_code=302)

        headers = dict(result.headers)
        media_type = headers.pop("Content-Type", None)
        headers["X-Cache"] = result.cache_status
        return Response(content=result.body, media_type=media_type, headers=headers)

    return app
