"""Caching fetch-and-convert proxy.

A request for (document URI, target format) is served from the cache when
possible. On a miss exactly one execution per key runs, concurrent requests
for the same key wait for it and share its outcome:

    Fetching -> Identifying -> Resolving -> Converting -> Cached -> Served

Any failure ends the request in Failed and surfaces as a ProxyError.

Conversion preference:
- download: on a miss the document is fetched; when it already is in the
  target format it is served as fetched, without conversion.
- convert: on a miss the target is first derived from representations of
  the same document already in the cache; a fetched document in the target
  format is still re-serialized through a native backend. With
  ``invalidate_downloads`` a cached target entry that was stored as fetched
  is bypassed and re-derived.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial

from rdfproxy.cache.base import CacheEntry, ConversionCache
from rdfproxy.cache.factory import create_cache
from rdfproxy.cache.inflight import InFlightConversions
from rdfproxy.cache.keys import CacheKey
from rdfproxy.config import Settings
from rdfproxy.conversion.engine import ConversionEngine, create_engine
from rdfproxy.conversion.graph import ConversionPath
from rdfproxy.conversion.pipeline import execute_path
from rdfproxy.errors import (
    IdentificationUnknownError,
    NoPathError,
    ProxyError,
    UnsupportedMediaTypeError,
)
from rdfproxy.fetch import DocumentFetcher, FetchedDocument, HttpFetcher
from rdfproxy.formats.identify import DEFAULT_SNIFF_BYTES, identify
from rdfproxy.formats.registry import Format, FormatRegistry
from rdfproxy.observability.logging import LogContext
from rdfproxy.observability.metrics import record_cache_hit, record_cache_miss

logger = logging.getLogger(__name__)


class ConversionPreference(str, Enum):
    """Where a missing representation comes from first."""

    DOWNLOAD = "download"
    CONVERT = "convert"

    @classmethod
    def from_flag(cls, prefer_conversion: bool) -> ConversionPreference:
        return cls.CONVERT if prefer_conversion else cls.DOWNLOAD


class RequestState(str, Enum):
    """Request lifecycle states."""

    FETCHING = "Fetching"
    IDENTIFYING = "Identifying"
    RESOLVING = "Resolving"
    CONVERTING = "Converting"
    CACHED = "Cached"
    SERVED = "Served"
    FAILED = "Failed"


@dataclass(frozen=True)
class ProxyResult:
    """A served representation."""

    entry: CacheEntry
    target: Format
    cache_hit: bool
    # States passed by the execution that produced the entry
    states: tuple[RequestState, ...] = ()

    @property
    def payload(self) -> bytes:
        return self.entry.payload

    @property
    def media_type(self) -> str:
        return self.entry.media_type


@dataclass(frozen=True)
class _Produced:
    entry: CacheEntry
    states: tuple[RequestState, ...]
    cache_hit: bool = False


class _Trace:
    """Records state transitions of one execution."""

    def __init__(self, uri: str, target: Format) -> None:
        self.uri = uri
        self.target = target
        self.states: list[RequestState] = []

    def enter(self, state: RequestState) -> None:
        self.states.append(state)
        logger.debug("%s [%s]: %s", self.uri, self.target.id, state.value)


class ConversionProxy:
    """Fetches, converts and caches documents.

    The cache store, the in-flight table and the fetcher live as long as the
    proxy; ``start`` and ``stop`` bracket that lifetime.
    """

    def __init__(
        self,
        engine: ConversionEngine,
        cache: ConversionCache,
        fetcher: DocumentFetcher,
        *,
        preference: ConversionPreference = ConversionPreference.DOWNLOAD,
        invalidate_downloads: bool = False,
        sniff_bytes: int = DEFAULT_SNIFF_BYTES,
    ) -> None:
        self.engine = engine
        self.cache = cache
        self.fetcher = fetcher
        self.preference = preference
        self.invalidate_downloads = invalidate_downloads
        self.sniff_bytes = sniff_bytes
        self._inflight: InFlightConversions[_Produced] = InFlightConversions()

    @property
    def registry(self) -> FormatRegistry:
        return self.engine.registry

    @property
    def in_flight(self) -> int:
        """Number of keys with an execution running."""
        return len(self._inflight)

    async def start(self) -> None:
        await self.fetcher.start()

    async def stop(self) -> None:
        await self._inflight.aclose()
        await self.fetcher.stop()
        await self.cache.close()

    def target_format(self, target: Format | str) -> Format:
        """Map a media type to a registry format.

        Raises:
            UnsupportedMediaTypeError: If the media type has no alias entry
        """
        if isinstance(target, Format):
            return target
        fmt = self.registry.by_media_type(target)
        if fmt is None:
            raise UnsupportedMediaTypeError(target)
        return fmt

    async def get(
        self,
        uri: str,
        target: Format | str,
        prefer_conversion: bool | None = None,
        query_accept: str | None = None,
    ) -> ProxyResult:
        """Serve ``uri`` in the target format.

        Args:
            uri: Document URI
            target: Target format, or a media type mapped through the registry
            prefer_conversion: Overrides the configured preference
            query_accept: Media type requested from the upstream source

        Raises:
            ProxyError: On any failure, carrying its kind
        """
        try:
            fmt = self.target_format(target)
            preference = (
                self.preference
                if prefer_conversion is None
                else ConversionPreference.from_flag(prefer_conversion)
            )
            key = CacheKey(uri, fmt.id)

            entry = await self._lookup(key, preference)
            if entry is not None:
                record_cache_hit(self.cache.cache_type)
                logger.debug("%s: served from cache", key)
                return ProxyResult(
                    entry, fmt, cache_hit=True, states=(RequestState.CACHED, RequestState.SERVED)
                )

            record_cache_miss(self.cache.cache_type)
            produced = await self._inflight.run(
                key, partial(self._produce, key, fmt, preference, query_accept)
            )
            return ProxyResult(
                produced.entry,
                fmt,
                cache_hit=produced.cache_hit,
                states=produced.states + (RequestState.SERVED,),
            )
        except ProxyError:
            raise
        except Exception as e:
            raise ProxyError.from_exception(e) from e

    async def _lookup(self, key: CacheKey, preference: ConversionPreference) -> CacheEntry | None:
        entry = await self.cache.get(key)
        if entry is None:
            return None
        if (
            preference is ConversionPreference.CONVERT
            and self.invalidate_downloads
            and entry.is_download
        ):
            logger.info("%s: bypassing downloaded entry to re-derive it", key)
            return None
        return entry

    async def _produce(
        self,
        key: CacheKey,
        target: Format,
        preference: ConversionPreference,
        query_accept: str | None,
    ) -> _Produced:
        """Sole execution for a key; its outcome is shared with all waiters."""
        trace = _Trace(key.uri, target)
        with LogContext(document_uri=key.uri):
            try:
                # A previous execution may have stored the entry after our lookup
                entry = await self._lookup(key, preference)
                if entry is not None:
                    logger.debug("%s: stored by a concurrent execution", key)
                    return _Produced(entry, (RequestState.CACHED,), cache_hit=True)

                if preference is ConversionPreference.CONVERT:
                    entry = await self._derive_from_cache(key, target, trace)
                    if entry is not None:
                        return _Produced(entry, tuple(trace.states))

                entry = await self._fetch_and_convert(key, target, preference, query_accept, trace)
                return _Produced(entry, tuple(trace.states))
            except Exception as e:
                error = ProxyError.from_exception(e)
                trace.enter(RequestState.FAILED)
                logger.warning("%s: %s: %s", key, error.kind.value, error.message)
                if error is e:
                    raise
                raise error from e

    async def _fetch_and_convert(
        self,
        key: CacheKey,
        target: Format,
        preference: ConversionPreference,
        query_accept: str | None,
        trace: _Trace,
    ) -> CacheEntry:
        trace.enter(RequestState.FETCHING)
        document = await self.fetcher.fetch(key.uri, accept=query_accept)

        trace.enter(RequestState.IDENTIFYING)
        source = self._identify(document, query_accept)
        download = CacheEntry(
            key=CacheKey(key.uri, source.id),
            payload=document.content,
            media_type=source.canonical_media_type,
            source_format_id=source.id,
        )
        await self.cache.put(download)

        trace.enter(RequestState.RESOLVING)
        if source == target:
            if preference is ConversionPreference.DOWNLOAD:
                trace.enter(RequestState.CACHED)
                return download
            path = self.engine.canonical_path(target) or self.engine.resolve(source, target)
        else:
            path = self.engine.resolve(source, target)

        return await self._convert_and_store(key, target, source, path, document.content, trace)

    async def _derive_from_cache(
        self, key: CacheKey, target: Format, trace: _Trace
    ) -> CacheEntry | None:
        """Convert a cached representation of the same document, if any."""
        best: tuple[int, int, Format, ConversionPath] | None = None
        order = {fmt.id: i for i, fmt in enumerate(self.registry)}

        for format_id in await self.cache.list_formats(key.uri):
            source = self.registry.get(format_id)
            if source is None or source.html_target_only:
                continue
            if source == target:
                path = self.engine.canonical_path(target)
                if path is None:
                    continue
            else:
                try:
                    path = self.engine.resolve(source, target)
                except NoPathError:
                    continue
            rank = (path.cost, order[source.id])
            if best is None or rank < best[:2]:
                best = (*rank, source, path)

        if best is None:
            return None

        _, _, source, path = best
        cached = await self.cache.get(CacheKey(key.uri, source.id))
        if cached is None:
            return None
        trace.enter(RequestState.RESOLVING)
        logger.info("%s: deriving from cached %s", key, source.id)
        return await self._convert_and_store(key, target, source, path, cached.payload, trace)

    async def _convert_and_store(
        self,
        key: CacheKey,
        target: Format,
        source: Format,
        path: ConversionPath,
        payload: bytes,
        trace: _Trace,
    ) -> CacheEntry:
        trace.enter(RequestState.CONVERTING)
        logger.info("%s: converting via %s", key, path.describe())
        result = await execute_path(path, payload)

        entry = CacheEntry(
            key=key,
            payload=result,
            media_type=target.canonical_media_type,
            source_format_id=source.id,
            converted=not path.is_identity,
        )
        await self.cache.put(entry)
        trace.enter(RequestState.CACHED)
        return entry

    def _identify(self, document: FetchedDocument, query_accept: str | None) -> Format:
        source = identify(
            document.content,
            file_name=document.location or document.uri,
            declared_media_type=document.media_type,
            registry=self.registry,
            sniff_bytes=self.sniff_bytes,
        )
        if source is None:
            source = self.registry.by_media_type(query_accept)
        if source is None:
            raise IdentificationUnknownError(
                f"{document.uri} (declared type: {document.media_type or 'none'})"
            )
        logger.debug("Identified %s as %s", document.uri, source.id)
        return source


async def create_proxy(
    settings: Settings,
    engine: ConversionEngine | None = None,
    cache: ConversionCache | None = None,
    fetcher: DocumentFetcher | None = None,
) -> ConversionProxy:
    """Wire a proxy from configuration; explicit components take precedence."""
    engine = engine or create_engine(settings)
    if cache is None:
        cache = await create_cache(settings, engine.registry)
    if fetcher is None:
        fetcher = HttpFetcher(timeout=settings.fetch_timeout, user_agent=settings.user_agent)
    if engine.registry.get(settings.default_format) is None:
        raise ValueError(f"Unknown default_format: {settings.default_format}")
    return ConversionProxy(
        engine,
        cache,
        fetcher,
        preference=ConversionPreference.from_flag(settings.prefer_conversion),
        invalidate_downloads=settings.prefer_conversion_invalidates,
        sniff_bytes=settings.sniff_bytes,
    )
