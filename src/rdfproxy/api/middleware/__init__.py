"""HTTP middleware."""

from rdfproxy.api.middleware.correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
