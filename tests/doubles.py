"""Test doubles shared across the test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

from rdfproxy.cache.base import CacheEntry, ConversionCache
from rdfproxy.cache.keys import CacheKey
from rdfproxy.conversion.backends.base import BackendKind, ConverterBackend
from rdfproxy.errors import FetchError
from rdfproxy.fetch import DocumentFetcher, FetchedDocument
from rdfproxy.formats.registry import Format

TURTLE_DOC = b"""@prefix ex: <https://example.org/> .
@prefix owl: <http://www.w3.org/2002/07/owl#> .

ex:Thing a owl:Class ;
    ex:label "Thing" .
"""


def tag_payload(payload: bytes, source: Format, target: Format) -> bytes:
    return f"[{source.id}->{target.id}]".encode() + payload


class RecordingBackend(ConverterBackend):
    """Backend that records its invocations and tags the payload."""

    def __init__(
        self,
        name: str,
        pairs: Iterable[tuple[str, str]],
        *,
        kind: BackendKind = BackendKind.EXTERNAL,
        html_target_only: bool = False,
        render: Callable[[bytes, Format, Format], bytes] = tag_payload,
        delay: float = 0.0,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.kind = kind
        self.pairs = set(pairs)
        self.html_target_only = html_target_only
        self.render = render
        self.delay = delay
        self.error = error
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None

    def can_convert(self, source: Format, target: Format) -> bool:
        return (source.id, target.id) in self.pairs

    async def _convert(self, payload: bytes, source: Format, target: Format) -> bytes:
        self.calls.append((source.id, target.id))
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.render(payload, source, target)


class StaticFetcher(DocumentFetcher):
    """Fetcher serving fixed documents."""

    def __init__(self, documents: dict[str, FetchedDocument] | None = None, delay: float = 0.0):
        self.documents = dict(documents or {})
        self.delay = delay
        self.calls: list[tuple[str, str | None]] = []

    def add(self, uri: str, content: bytes, media_type: str | None = None) -> None:
        self.documents[uri] = FetchedDocument(uri=uri, content=content, media_type=media_type)

    async def fetch(self, uri: str, accept: str | None = None) -> FetchedDocument:
        self.calls.append((uri, accept))
        if self.delay:
            await asyncio.sleep(self.delay)
        document = self.documents.get(uri)
        if document is None:
            raise FetchError(uri, "upstream returned 404 Not Found", status_code=404)
        return document


class MemoryCache(ConversionCache):
    """Dictionary-backed cache store."""

    cache_type = "memory"

    def __init__(self, read_delay: float = 0.0) -> None:
        self.entries: dict[CacheKey, CacheEntry] = {}
        self.puts: list[CacheKey] = []
        self.read_delay = read_delay

    async def get(self, key: CacheKey) -> CacheEntry | None:
        entry = self.entries.get(key)
        # The answer reflects the store at the start of the read
        if self.read_delay:
            await asyncio.sleep(self.read_delay)
        return entry

    async def put(self, entry: CacheEntry) -> None:
        self.entries[entry.key] = entry
        self.puts.append(entry.key)

    async def delete(self, key: CacheKey) -> bool:
        return self.entries.pop(key, None) is not None

    async def list_formats(self, uri: str) -> list[str]:
        return sorted(key.format_id for key in self.entries if key.uri == uri)
