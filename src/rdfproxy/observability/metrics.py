"""Prometheus metrics for the conversion proxy.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Conversion metrics (per backend outcome, duration, in-flight count)
- Cache metrics (hits, misses)
- Fetch metrics (per outcome)

Usage:
    from rdfproxy.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.conversions_total.labels(backend="rdflib", outcome="success").inc()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from rdfproxy.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = None
    http_request_duration_seconds: Any = None

    # Conversion metrics
    conversions_total: Any = None
    conversion_duration_seconds: Any = None
    conversions_in_flight: Any = None

    # Cache metrics
    cache_hits_total: Any = None
    cache_misses_total: Any = None

    # Fetch metrics
    fetches_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = CollectorRegistry()

        self.http_requests_total = Counter(
            "rdfproxy_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=self._registry,
        )

        self.http_request_duration_seconds = Histogram(
            "rdfproxy_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
            registry=self._registry,
        )

        self.conversions_total = Counter(
            "rdfproxy_conversions_total",
            "Backend conversion invocations",
            ["backend", "outcome"],
            registry=self._registry,
        )

        self.conversion_duration_seconds = Histogram(
            "rdfproxy_conversion_duration_seconds",
            "Backend conversion latency in seconds",
            ["backend"],
            buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )

        self.conversions_in_flight = Gauge(
            "rdfproxy_conversions_in_flight",
            "Cache keys with a conversion currently executing",
            registry=self._registry,
        )

        self.cache_hits_total = Counter(
            "rdfproxy_cache_hits_total",
            "Cache hits",
            ["cache_type"],
            registry=self._registry,
        )

        self.cache_misses_total = Counter(
            "rdfproxy_cache_misses_total",
            "Cache misses",
            ["cache_type"],
            registry=self._registry,
        )

        self.fetches_total = Counter(
            "rdfproxy_fetches_total",
            "Remote document fetches",
            ["outcome"],
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        if request.url.path.startswith(("/health", "/metrics")):
            return await call_next(request)

        method = request.method
        path = request.url.path
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            if self.metrics.http_requests_total:
                self.metrics.http_requests_total.labels(
                    method=method, path=path, status=status_code
                ).inc()
            if self.metrics.http_request_duration_seconds:
                self.metrics.http_request_duration_seconds.labels(
                    method=method, path=path
                ).observe(duration)


def record_conversion(backend: str, outcome: str, duration: float) -> None:
    """Record a single backend invocation.

    Args:
        backend: Backend name (rdflib, pylode, ...)
        outcome: "success" or the failure kind
        duration: Invocation duration in seconds
    """
    metrics = get_metrics()
    if metrics.conversions_total:
        metrics.conversions_total.labels(backend=backend, outcome=outcome).inc()
    if metrics.conversion_duration_seconds:
        metrics.conversion_duration_seconds.labels(backend=backend).observe(duration)


def record_cache_hit(cache_type: str = "local") -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.cache_hits_total:
        metrics.cache_hits_total.labels(cache_type=cache_type).inc()


def record_cache_miss(cache_type: str = "local") -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.cache_misses_total:
        metrics.cache_misses_total.labels(cache_type=cache_type).inc()


def record_fetch(outcome: str) -> None:
    """Record a remote fetch attempt."""
    metrics = get_metrics()
    if metrics.fetches_total:
        metrics.fetches_total.labels(outcome=outcome).inc()


def set_in_flight(count: int) -> None:
    """Publish the current number of in-flight conversions."""
    metrics = get_metrics()
    if metrics.conversions_in_flight:
        metrics.conversions_in_flight.set(count)
