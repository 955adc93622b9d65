"""Base conversion cache interface.

Defines the abstract interface for persistent cache stores. A store owns its
entries; readers receive immutable CacheEntry values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from rdfproxy.cache.keys import CacheKey


@dataclass(frozen=True)
class CacheEntry:
    """A stored document representation."""

    key: CacheKey
    payload: bytes = field(repr=False)
    media_type: str
    stored_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    # Format the payload was derived from; equal to key.format_id for a download
    source_format_id: str | None = None
    # False when the payload is the document as fetched
    converted: bool = False

    @property
    def uri(self) -> str:
        return self.key.uri

    @property
    def format_id(self) -> str:
        return self.key.format_id

    @property
    def is_download(self) -> bool:
        """Whether the payload was fetched as-is rather than converted."""
        return not self.converted

    def meta(self) -> dict[str, Any]:
        """Metadata stored beside the payload."""
        return {
            "uri": self.key.uri,
            "format": self.key.format_id,
            "media_type": self.media_type,
            "stored_at": self.stored_at.isoformat(),
            "source_format": self.source_format_id,
            "converted": self.converted,
            "size": len(self.payload),
        }

    @classmethod
    def from_meta(cls, key: CacheKey, payload: bytes, meta: dict[str, Any]) -> CacheEntry:
        return cls(
            key=key,
            payload=payload,
            media_type=meta["media_type"],
            stored_at=datetime.fromisoformat(meta["stored_at"]),
            source_format_id=meta.get("source_format"),
            converted=bool(meta.get("converted", False)),
        )


class ConversionCache(ABC):
    """Abstract base class for cache stores."""

    cache_type: str = "base"

    @abstractmethod
    async def get(self, key: CacheKey) -> CacheEntry | None:
        """Get a cached entry.

        Returns:
            The entry, or None on a miss

        Raises:
            CacheStorageError: If the store cannot be read
        """
        ...

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        """Store an entry, replacing any entry with the same key.

        Raises:
            CacheStorageError: If the store cannot be written
        """
        ...

    @abstractmethod
    async def delete(self, key: CacheKey) -> bool:
        """Invalidate an entry.

        Returns:
            True if deleted, False if not found
        """
        ...

    @abstractmethod
    async def list_formats(self, uri: str) -> list[str]:
        """Format ids stored for a URI, sorted."""
        ...

    async def health_check(self) -> bool:
        """Check that the store is usable."""
        return True

    async def close(self) -> None:
        """Release resources held by the store."""
