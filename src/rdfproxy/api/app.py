"""FastAPI application factory for rdfproxy.

Creates the application with:
- The fetch-and-convert endpoint (GET /?uri=...)
- Format catalogue (/formats)
- Health probes and Prometheus metrics
- Lifecycle management for the conversion proxy
- Structured error handling
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from rdfproxy.api.errors import (
    ApiError,
    api_exception_handler,
    generic_exception_handler,
    proxy_exception_handler,
)
from rdfproxy.api.middleware import CorrelationMiddleware
from rdfproxy.api.routers import convert, formats, health
from rdfproxy.api.routers import metrics as metrics_router
from rdfproxy.config import settings
from rdfproxy.errors import ProxyError
from rdfproxy.observability import configure_logging
from rdfproxy.observability.metrics import MetricsMiddleware, get_metrics
from rdfproxy.proxy import ConversionProxy, create_proxy

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup:
    - Configure structured logging
    - Initialize Prometheus metrics
    - Build the conversion engine, cache store and fetcher

    On shutdown:
    - Cancel running conversions
    - Close the HTTP client and cache connections
    """
    configure_logging(
        json_format=settings.env != "dev",
        level=settings.log_level,
    )
    get_metrics()  # Initialize metrics registry

    logger.info(f"Starting rdfproxy ({settings.env})")
    if getattr(app.state, "proxy", None) is None:
        app.state.proxy = await create_proxy(settings)
    proxy: ConversionProxy = app.state.proxy
    await proxy.start()
    logger.info(
        "rdfproxy startup complete (backends: %s, cache: %s)",
        ", ".join(b.name for b in proxy.engine.backends),
        proxy.cache.cache_type,
    )

    yield

    logger.info("Shutting down rdfproxy")
    await proxy.stop()
    logger.info("rdfproxy shutdown complete")


def create_app(proxy: ConversionProxy | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        proxy: Prebuilt proxy; built from settings at startup when omitted
    """
    app = FastAPI(
        title="rdfproxy",
        description="Caching RDF fetch-and-convert proxy",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.proxy = proxy

    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(ProxyError, cast(ExceptionHandler, proxy_exception_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)
    app.include_router(formats.router)
    app.include_router(convert.router)

    return app
