"""Health check endpoints for rdfproxy.

Provides Kubernetes-compatible liveness and readiness probes:
- /health/live  - Liveness probe (always returns OK if process is running)
- /health/ready - Readiness probe (checks the conversion cache store)
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from rdfproxy.api.deps import get_proxy
from rdfproxy.proxy import ConversionProxy

router = APIRouter(tags=["health"])

CHECK_TIMEOUT = 5.0  # seconds


class HealthStatus(str, Enum):
    """Health check status."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of a single component."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            result["message"] = self.message
        return result


async def check_cache(proxy: ConversionProxy) -> ComponentHealth:
    """Check the cache store."""
    name = f"cache:{proxy.cache.cache_type}"
    start = time.monotonic()
    try:
        healthy = await asyncio.wait_for(proxy.cache.health_check(), timeout=CHECK_TIMEOUT)
    except asyncio.TimeoutError:
        return ComponentHealth(
            name=name,
            status=HealthStatus.UNHEALTHY,
            latency_ms=(time.monotonic() - start) * 1000,
            message="Cache check timed out",
        )
    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - start) * 1000,
        message=None if healthy else "Cache check failed",
    )


def check_converters(proxy: ConversionProxy) -> ComponentHealth:
    """Report formats no installed backend can produce."""
    unreachable = [fmt.id for fmt in proxy.engine.unreachable]
    return ComponentHealth(
        name="converters",
        status=HealthStatus.DEGRADED if unreachable else HealthStatus.HEALTHY,
        latency_ms=0.0,
        message=f"No backend produces: {', '.join(unreachable)}" if unreachable else None,
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe.

    Returns OK if the process is running.
    """
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(proxy: ConversionProxy = Depends(get_proxy)) -> JSONResponse:
    """Readiness probe.

    Returns 200 unless the cache store is unusable. Missing external tools
    degrade the status without failing the probe.
    """
    components = [await check_cache(proxy), check_converters(proxy)]

    if any(c.status == HealthStatus.UNHEALTHY for c in components):
        overall_status = HealthStatus.UNHEALTHY
    elif any(c.status == HealthStatus.DEGRADED for c in components):
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.HEALTHY

    return JSONResponse(
        content={
            "status": overall_status.value,
            "components": [c.to_dict() for c in components],
        },
        status_code=503 if overall_status == HealthStatus.UNHEALTHY else 200,
    )
