"""Remote document retrieval.

HttpFetcher downloads ``http(s)://`` documents with httpx and reads
``file://`` documents from the local file system.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import cast
from urllib.parse import urlsplit
from urllib.request import url2pathname

import aiofiles  # type: ignore[import-untyped]
import httpx

from rdfproxy.errors import FetchError
from rdfproxy.observability.metrics import record_fetch

logger = logging.getLogger(__name__)

# Sent upstream when the request does not name a media type
DEFAULT_ACCEPT = (
    "text/turtle, application/rdf+xml;q=0.9, application/ld+json;q=0.8, "
    "application/n-triples;q=0.8, application/trig;q=0.7, application/n-quads;q=0.7, "
    "text/n3;q=0.6, */*;q=0.1"
)


@dataclass(frozen=True)
class FetchedDocument:
    """Raw bytes of a retrieved document."""

    uri: str
    content: bytes = field(repr=False)
    # Content-Type as declared by the source, if any
    media_type: str | None = None
    # Final location after redirects; used for extension lookup
    location: str | None = None


class DocumentFetcher(ABC):
    """Abstract base class for document fetchers."""

    @abstractmethod
    async def fetch(self, uri: str, accept: str | None = None) -> FetchedDocument:
        """Retrieve a document.

        Args:
            uri: Document URI
            accept: Media type to request from the source

        Raises:
            FetchError: If the document cannot be retrieved
        """
        ...

    async def start(self) -> None:
        """Acquire resources."""

    async def stop(self) -> None:
        """Release resources."""


class HttpFetcher(DocumentFetcher):
    """Fetches documents over HTTP(S) and from file:// URIs."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "rdfproxy",
        client: httpx.AsyncClient | None = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self._client = client
        self._owns_client = client is None

    async def start(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.user_agent},
            )
            self._owns_client = True

    async def stop(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, uri: str, accept: str | None = None) -> FetchedDocument:
        scheme = urlsplit(uri).scheme.lower()
        try:
            if scheme in ("http", "https"):
                document = await self._fetch_http(uri, accept)
            elif scheme == "file":
                document = await self._fetch_file(uri)
            else:
                raise FetchError(uri, f"unsupported URI scheme '{scheme}'")
        except FetchError as e:
            record_fetch("error")
            logger.warning("Fetch failed: %s", e)
            raise
        record_fetch("success")
        logger.info(
            "Fetched %s (%d bytes, %s)", uri, len(document.content), document.media_type or "no type"
        )
        return document

    async def _fetch_http(self, uri: str, accept: str | None) -> FetchedDocument:
        client = self._client
        if client is None:
            await self.start()
            client = cast(httpx.AsyncClient, self._client)

        try:
            response = await client.get(
                uri, headers={"Accept": accept or DEFAULT_ACCEPT}, follow_redirects=True
            )
        except httpx.TimeoutException:
            raise FetchError(uri, f"timed out after {self.timeout:g}s") from None
        except httpx.RequestError as e:
            raise FetchError(uri, str(e) or type(e).__name__) from e

        if response.is_error:
            raise FetchError(
                uri,
                f"upstream returned {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        return FetchedDocument(
            uri=uri,
            content=response.content,
            media_type=response.headers.get("content-type"),
            location=str(response.url),
        )

    async def _fetch_file(self, uri: str) -> FetchedDocument:
        path = url2pathname(urlsplit(uri).path)
        try:
            async with aiofiles.open(path, "rb") as f:
                content = await f.read()
        except OSError as e:
            raise FetchError(uri, e.strerror or str(e)) from e
        return FetchedDocument(uri=uri, content=content, location=path)
