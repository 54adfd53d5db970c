"""
FastAPI application factory for the FPL proxy.

Registers one GET route per row of the resource table, plus ``/health``,
and maps the proxy's exception types onto HTTP status codes.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager, suppress
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fpl_proxy.api.schemas import ErrorResponse, HealthResponse
from fpl_proxy.cache.ttl import ResponseCache, purge_expired_periodically
from fpl_proxy.config import Settings, get_settings
from fpl_proxy.exceptions import (
    ConfigurationError,
    InvalidParameterError,
    ProxyException,
    ResourceNotFoundError,
    UpstreamExhaustedError,
)
from fpl_proxy.resources import RESOURCES, ResourceDefinition
from fpl_proxy.service import ProxyService, build_service
from fpl_proxy.upstream.fetcher import UpstreamFetcher
from fpl_proxy.upstream.snapshots import LocalSnapshotStore

logger = logging.getLogger(__name__)

SOURCE_HEADER = "X-Proxy-Source"

_STATUS_MAP = {
    ResourceNotFoundError: 404,
    InvalidParameterError: 400,
    UpstreamExhaustedError: 500,
    ConfigurationError: 500,
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_response(request: Request, message: str, status_code: int) -> JSONResponse:
    body = ErrorResponse(
        error=message,
        timestamp=_utc_now(),
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(body.model_dump(), status_code=status_code)


def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "error": str(exc),
        },
        exc_info=exc,
    )
    return _error_response(request, "An unexpected error occurred", 500)


def _make_endpoint(
    definition: ResourceDefinition, max_age: int
) -> Callable[[Request], Awaitable[Response]]:
    async def endpoint(request: Request) -> Response:
        service: ProxyService = request.app.state.proxy_service
        resolution = await service.fetch(definition.name, dict(request.path_params))
        source = "cache" if resolution.from_cache else resolution.source.value
        return JSONResponse(
            resolution.payload,
            headers={
                "Cache-Control": f"public, max-age={max_age}",
                SOURCE_HEADER: source,
            },
        )

    endpoint.__name__ = "get_" + definition.name.replace("-", "_")
    return endpoint


def create_app(
    settings: Optional[Settings] = None,
    *,
    fetcher: Optional[UpstreamFetcher] = None,
    snapshots: Optional[LocalSnapshotStore] = None,
    cache: Optional[ResponseCache] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use; defaults to :func:`get_settings`.
        fetcher: Upstream fetcher (tests inject one backed by a mock
            transport).
        snapshots: Snapshot store override.
        cache: Response cache override.

    Returns:
        Configured FastAPI instance.
    """
    settings = settings or get_settings()
    service = build_service(settings, fetcher=fetcher, snapshots=snapshots, cache=cache)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        proxy: ProxyService = app.state.proxy_service
        purge = asyncio.create_task(
            purge_expired_periodically(proxy.cache, proxy.cache.ttl_seconds)
        )
        try:
            yield
        finally:
            purge.cancel()
            with suppress(asyncio.CancelledError):
                await purge
            await proxy.aclose()

    app = FastAPI(
        title=settings.api.service_name,
        description="Read-through caching proxy for the Fantasy Premier League API",
        version=settings.api.version,
        lifespan=lifespan,
    )

    # -- Shared state --
    app.state.proxy_service = service
    app.state.start_time = time.time()
    app.state.version = settings.api.version

    # -- Request-ID middleware --
    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Response:
        """Attach a unique request ID to every request.

        Unhandled exceptions are turned into the 500 error body here, so
        the response still carries the request ID and CORS headers.
        """
        request_id = request.headers.get(
            "X-Request-Id", uuid.uuid4().hex[:12]
        )
        request.state.request_id = request_id
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            response = _unhandled_error(request, exc)
        response.headers["X-Request-Id"] = request_id
        return response

    # -- CORS (outermost) --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=[SOURCE_HEADER, "X-Request-Id"],
    )

    # -- Exception handlers --
    @app.exception_handler(ProxyException)
    async def proxy_exception_handler(
        request: Request, exc: ProxyException
    ) -> Response:
        """Map ProxyException subclasses to their HTTP status."""
        status_code = next(
            (code for exc_type, code in _STATUS_MAP.items() if isinstance(exc, exc_type)),
            500,
        )
        logger.error(
            "Request error",
            extra={
                "path": request.url.path,
                "error": str(exc),
                "status_code": status_code,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        return _error_response(request, str(exc), status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> Response:
        """Unmatched routes and disallowed methods."""
        return _error_response(request, str(exc.detail), exc.status_code)

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> Response:
        """Catch-all for exceptions raised outside the request-ID middleware."""
        return _unhandled_error(request, exc)

    # -- Routes --
    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Liveness plus cache and snapshot status."""
        proxy: ProxyService = request.app.state.proxy_service
        store = proxy.snapshots
        return HealthResponse(
            service=settings.api.service_name,
            version=request.app.state.version,
            timestamp=_utc_now(),
            uptime_seconds=round(time.time() - request.app.state.start_time, 3),
            cache=proxy.cache.stats(),
            snapshots=store.available_keys if store is not None else [],
        )

    for definition in RESOURCES:
        app.add_api_route(
            definition.route,
            _make_endpoint(definition, settings.api.response_max_age_seconds),
            methods=["GET"],
            name=definition.name,
        )

    logger.info(
        "Application created",
        extra={"routes": [d.route for d in RESOURCES], "version": settings.api.version},
    )
    return app
