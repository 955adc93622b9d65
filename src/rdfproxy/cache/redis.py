"""Redis conversion cache.

Stores payload and metadata under separate keys, written in one pipeline,
plus a per-URI set of stored format ids. Uses the redis-py async client
for connection pooling.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import orjson
import redis.asyncio as redis
from redis.exceptions import RedisError

from rdfproxy.cache.base import CacheEntry, ConversionCache
from rdfproxy.cache.keys import CacheKey, CacheKeys
from rdfproxy.errors import CacheStorageError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def create_redis(url: str) -> Redis:
    """Create a pooled Redis client for ``url``."""
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=False,  # We're storing bytes
    )


class RedisConversionCache(ConversionCache):
    """Cache store backed by Redis.

    Entries never expire unless a TTL is configured.
    """

    cache_type = "redis"

    def __init__(self, client: Redis, ttl: int | None = None):
        self.client = client
        self.ttl = ttl

    async def get(self, key: CacheKey) -> CacheEntry | None:
        try:
            async with self.client.pipeline() as pipe:
                pipe.get(CacheKeys.payload(key))
                pipe.get(CacheKeys.meta(key))
                payload, raw_meta = await pipe.execute()
        except RedisError as e:
            raise CacheStorageError(f"Failed to read cache entry {key}: {e}") from e

        if payload is None or raw_meta is None:
            return None

        try:
            return CacheEntry.from_meta(key, payload, orjson.loads(raw_meta))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> None:
        payload_key = CacheKeys.payload(entry.key)
        meta_key = CacheKeys.meta(entry.key)
        formats_key = CacheKeys.formats(entry.uri)
        meta = orjson.dumps(entry.meta())

        try:
            async with self.client.pipeline() as pipe:
                if self.ttl:
                    pipe.setex(payload_key, self.ttl, entry.payload)
                    pipe.setex(meta_key, self.ttl, meta)
                else:
                    pipe.set(payload_key, entry.payload)
                    pipe.set(meta_key, meta)
                pipe.sadd(formats_key, entry.format_id)
                if self.ttl:
                    pipe.expire(formats_key, self.ttl)
                await pipe.execute()
        except RedisError as e:
            raise CacheStorageError(f"Failed to store cache entry {entry.key}: {e}") from e

    async def delete(self, key: CacheKey) -> bool:
        try:
            async with self.client.pipeline() as pipe:
                pipe.delete(CacheKeys.payload(key), CacheKeys.meta(key))
                pipe.srem(CacheKeys.formats(key.uri), key.format_id)
                deleted, _ = await pipe.execute()
        except RedisError as e:
            raise CacheStorageError(f"Failed to delete cache entry {key}: {e}") from e
        return bool(deleted)

    async def list_formats(self, uri: str) -> list[str]:
        try:
            members = await self.client.smembers(CacheKeys.formats(uri))
        except RedisError as e:
            raise CacheStorageError(f"Failed to list cache entries of {uri}: {e}") from e
        return sorted(m.decode() if isinstance(m, bytes) else m for m in members)

    async def health_check(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning("Redis health check failed: %s", e)
            return False

    async def close(self) -> None:
        await self.client.aclose()
