"""Conversion cache: persistent stores and in-flight deduplication."""

from rdfproxy.cache.base import CacheEntry, ConversionCache
from rdfproxy.cache.factory import create_cache
from rdfproxy.cache.inflight import InFlightConversions
from rdfproxy.cache.keys import CacheKey, CacheKeys
from rdfproxy.cache.local import LocalConversionCache
from rdfproxy.cache.redis import RedisConversionCache

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheKeys",
    "ConversionCache",
    "InFlightConversions",
    "LocalConversionCache",
    "RedisConversionCache",
    "create_cache",
]
