"""FastAPI dependencies."""

from __future__ import annotations

from fastapi import Request

from rdfproxy.proxy import ConversionProxy


def get_proxy(request: Request) -> ConversionProxy:
    """The proxy owned by the running application."""
    proxy: ConversionProxy | None = getattr(request.app.state, "proxy", None)
    if proxy is None:
        raise RuntimeError("Conversion proxy is not initialized")
    return proxy
