"""API routers."""

from rdfproxy.api.routers import convert, formats, health, metrics

__all__ = ["convert", "formats", "health", "metrics"]
