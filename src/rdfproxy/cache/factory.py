"""Conversion cache factory for rdfproxy."""

from __future__ import annotations

from rdfproxy.cache.base import ConversionCache
from rdfproxy.cache.local import LocalConversionCache
from rdfproxy.cache.redis import RedisConversionCache, create_redis
from rdfproxy.config import Settings
from rdfproxy.formats.registry import FormatRegistry


async def create_cache(settings: Settings, registry: FormatRegistry) -> ConversionCache:
    """Create the cache store selected by settings."""
    cache_type = settings.cache_backend.lower()
    if cache_type == "local":
        return LocalConversionCache(settings.cache_root, registry)
    if cache_type == "redis":
        return RedisConversionCache(create_redis(settings.redis_url), ttl=settings.cache_ttl)
    raise ValueError("Unsupported cache_backend. Supported values: local, redis.")
