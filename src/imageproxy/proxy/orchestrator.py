# src/imageproxy/proxy/orchestrator.py
"""Proxy orchestrator: request lifecycle from query to served artifact.

    CHECKING_CACHE -> hit  -> SERVING -> SERVED
    CHECKING_CACHE -> miss -> FETCHING -> TRANSFORMING -> PERSISTING
                           -> SERVING -> SERVED

Any failure moves to FAILED and aborts the rest of the pipeline: nothing is
written and no partial response is produced. Errors are not retried.

There is no per-address mutual exclusion. Two concurrent requests for the
same uncached address both fetch, transform and write; the bytes written are
identical, and both stores tolerate concurrent writers of one key.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from imageproxy.cache.keys import derive_cache_address
from imageproxy.core.errors import ImageProxyError
from imageproxy.core.models import CacheAddress, ParameterSet
from imageproxy.core.parameters import parse_query
from imageproxy.logging.context import set_address_context, set_state_context
from imageproxy.proxy.headers import DEFAULT_MAX_AGE, image_headers

if TYPE_CHECKING:
    from imageproxy.fetch.source_fetcher import SourceFetcher
    from imageproxy.storage.base_cache_store import BaseCacheStore
    from imageproxy.transform.engine import TransformEngine

logger = logging.getLogger(__name__)


class ProxyState(str, Enum):
    CHECKING_CACHE = "checking_cache"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    PERSISTING = "persisting"
    SERVING = "serving"
    SERVED = "served"
    FAILED = "failed"


@dataclass
class ProxyResult:
    """Terminal outcome of a served request."""

    address: CacheAddress
    params: ParameterSet
    cache_status: str
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    redirect_url: str | None = None
    states: list[ProxyState] = field(default_factory=list)

    @property
    def content_type(self) -> str | None:
        return self.headers.get("Content-Type")

    @property
    def is_redirect(self) -> bool:
        return self.redirect_url is not None


class _Lifecycle:
    """Tracks visited states for one request."""

    def __init__(self) -> None:
        self.states: list[ProxyState] = []

    @property
    def current(self) -> ProxyState | None:
        return self.states[-1] if self.states else None

    def enter(self, state: ProxyState) -> None:
        self.states.append(state)
        set_state_context(state.value)


class ProxyOrchestrator:
    """Compose parameter parsing, cache lookup, fetch, transform and persist.

    Args:
        store: Cache store backend.
        fetcher: Source image fetcher.
        engine: Transform engine.
        cache_max_age: Cache-Control max-age of served artifacts.
        redirect_on_hit: Answer cache hits with a redirect to the store's
            public URL when the store has one.
    """

    def __init__(
        self,
        store: BaseCacheStore,
        fetcher: SourceFetcher,
        engine: TransformEngine,
        cache_max_age: int = DEFAULT_MAX_AGE,
        redirect_on_hit: bool = False,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._engine = engine
        self._cache_max_age = cache_max_age
        self._redirect_on_hit = redirect_on_hit

    @property
    def store(self) -> BaseCacheStore:
        return self._store

    async def handle(self, query: Mapping[str, str]) -> ProxyResult:
        """Serve one request described by its query parameters.

        Raises:
            InvalidParameter: Before any I/O, on bad parameters.
            ImageProxyError: On fetch, decode, encode or storage failure,
                with ``error.state`` set to the failing state.
        """
        source, params = parse_query(query)
        return await self.serve(source, params)

    async def serve(self, source: str, params: ParameterSet) -> ProxyResult:
        """Serve ``source`` transformed by an already validated ParameterSet."""
        address = derive_cache_address(source, params)
        set_address_context(address.key)
        lifecycle = _Lifecycle()
        start = time.monotonic()

        try:
            lifecycle.enter(ProxyState.CHECKING_CACHE)
            if await self._store.exists(address):
                result = await self._serve_hit(address, params, lifecycle)
            else:
                result = await self._serve_miss(source, address, params, lifecycle)
        except ImageProxyError as e:
            e.state = lifecycle.current.value if lifecycle.current else None
            lifecycle.enter(ProxyState.FAILED)
            logger.error("Request failed while %s: %s", e.state, e)
            raise
        except Exception:
            lifecycle.enter(ProxyState.FAILED)
            logger.exception("Unexpected failure for %s", address.key)
            raise

        lifecycle.enter(ProxyState.SERVED)
        result.states = lifecycle.states
        logger.info(
            "Served %s (%s) in %.3fs",
            address.key, result.cache_status, time.monotonic() - start,
        )
        return result

    async def _serve_hit(
        self, address: CacheAddress, params: ParameterSet, lifecycle: _Lifecycle
    ) -> ProxyResult:
        lifecycle.enter(ProxyState.SERVING)
        if self._redirect_on_hit:
            url = self._store.public_url(address)
            if url is not None:
                return ProxyResult(
                    address=address, params=params, cache_status="HIT",
                    redirect_url=url,
                )

        data = await self._store.read(address)
        return ProxyResult(
            address=address,
            params=params,
            cache_status="HIT",
            body=data,
            headers=image_headers(params.format, data, self._cache_max_age),
        )

    async def _serve_miss(
        self,
        source: str,
        address: CacheAddress,
        params: ParameterSet,
        lifecycle: _Lifecycle,
    ) -> ProxyResult:
        lifecycle.enter(ProxyState.FETCHING)
        fetched = await self._fetcher.fetch(source)

        lifecycle.enter(ProxyState.TRANSFORMING)
        artifact = await asyncio.to_thread(self._engine.apply, fetched.image, params)
        headers = image_headers(artifact.format, artifact.data, self._cache_max_age)

        lifecycle.enter(ProxyState.PERSISTING)
        await self._store.write(address, artifact.data, headers["Content-Type"])

        lifecycle.enter(ProxyState.SERVING)
        return ProxyResult(
            address=address,
            params=params,
            cache_status="MISS",
            body=artifact.data,
            headers=headers,
        )
