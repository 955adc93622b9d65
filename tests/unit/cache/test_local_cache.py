"""Tests for the local filesystem cache."""

from pathlib import Path

import orjson
import pytest

from rdfproxy.cache.base import CacheEntry
from rdfproxy.cache.keys import CacheKey
from rdfproxy.cache.local import LocalConversionCache
from rdfproxy.formats.registry import FormatRegistry

URI = "https://example.org/ontology"


@pytest.fixture
def cache(tmp_path: Path, registry: FormatRegistry) -> LocalConversionCache:
    return LocalConversionCache(tmp_path, registry)


def entry(format_id: str = "turtle", payload: bytes = b"data", **kwargs) -> CacheEntry:
    return CacheEntry(
        key=CacheKey(URI, format_id), payload=payload, media_type="text/turtle", **kwargs
    )


class TestLocalConversionCache:
    """Tests for LocalConversionCache."""

    @pytest.mark.asyncio
    async def test_miss(self, cache: LocalConversionCache) -> None:
        """Unknown keys are misses."""
        assert await cache.get(CacheKey(URI, "turtle")) is None

    @pytest.mark.asyncio
    async def test_put_get(self, cache: LocalConversionCache) -> None:
        """Stored entries are returned with their metadata."""
        stored = entry("html", b"<html/>", source_format_id="turtle", converted=True)
        await cache.put(stored)
        loaded = await cache.get(stored.key)
        assert loaded == stored
        assert not loaded.is_download

    @pytest.mark.asyncio
    async def test_layout(self, cache: LocalConversionCache, tmp_path: Path) -> None:
        """Payloads are named by format id and extension."""
        await cache.put(entry("turtle"))
        directory = cache.document_dir(URI)
        assert directory.parent == tmp_path / "documents"
        assert (directory / "turtle.ttl").read_bytes() == b"data"
        meta = orjson.loads((directory / "turtle.meta.json").read_bytes())
        assert meta["format"] == "turtle"
        assert meta["size"] == 4
        assert not [p for p in directory.iterdir() if p.name.endswith(".tmp")]

    @pytest.mark.asyncio
    async def test_replace(self, cache: LocalConversionCache) -> None:
        """A later put replaces the entry."""
        await cache.put(entry(payload=b"old"))
        await cache.put(entry(payload=b"new"))
        assert (await cache.get(CacheKey(URI, "turtle"))).payload == b"new"

    @pytest.mark.asyncio
    async def test_payload_without_meta_is_a_miss(self, cache: LocalConversionCache) -> None:
        """An entry is complete only once its meta file exists."""
        await cache.put(entry())
        cache.meta_path(CacheKey(URI, "turtle")).unlink()
        assert await cache.get(CacheKey(URI, "turtle")) is None

    @pytest.mark.asyncio
    async def test_corrupt_meta_is_a_miss(self, cache: LocalConversionCache) -> None:
        """Unreadable metadata is ignored."""
        await cache.put(entry())
        cache.meta_path(CacheKey(URI, "turtle")).write_bytes(b"{not json")
        assert await cache.get(CacheKey(URI, "turtle")) is None

    @pytest.mark.asyncio
    async def test_list_formats(self, cache: LocalConversionCache) -> None:
        """Stored formats are listed sorted."""
        assert await cache.list_formats(URI) == []
        await cache.put(entry("turtle"))
        await cache.put(entry("html"))
        assert await cache.list_formats(URI) == ["html", "turtle"]
        assert await cache.list_formats("https://example.org/other") == []

    @pytest.mark.asyncio
    async def test_delete(self, cache: LocalConversionCache) -> None:
        """Deleted entries become misses."""
        await cache.put(entry())
        assert await cache.delete(CacheKey(URI, "turtle"))
        assert not await cache.delete(CacheKey(URI, "turtle"))
        assert await cache.get(CacheKey(URI, "turtle")) is None

    @pytest.mark.asyncio
    async def test_health_check(self, cache: LocalConversionCache) -> None:
        """A writable root is healthy."""
        assert await cache.health_check()
        assert cache.documents_dir.is_dir()
