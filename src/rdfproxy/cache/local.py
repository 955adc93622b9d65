"""Local filesystem conversion cache.

Stores entries in a directory per document:
    {root}/documents/{nameified-uri}-{sha256[:16]}/{format_id}.{ext}
    {root}/documents/{nameified-uri}-{sha256[:16]}/{format_id}.meta.json

Files are written to a temporary name and renamed into place, so readers
never observe a partially written payload. The meta file is written last
and marks the entry as complete.
"""

from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

import aiofiles  # type: ignore[import-untyped]
import aiofiles.os  # type: ignore[import-untyped]
import orjson

from rdfproxy.cache.base import CacheEntry, ConversionCache
from rdfproxy.cache.keys import CacheKey, document_dir_name
from rdfproxy.errors import CacheStorageError
from rdfproxy.formats.registry import FormatRegistry

logger = logging.getLogger(__name__)

META_SUFFIX = ".meta.json"


class LocalConversionCache(ConversionCache):
    """Cache store backed by a local directory."""

    cache_type = "local"

    def __init__(self, root: str | Path, registry: FormatRegistry):
        """Initialize the local cache.

        Args:
            root: Cache root directory
            registry: Formats, used to name payload files by extension
        """
        self.root = Path(root)
        self.registry = registry

    @property
    def documents_dir(self) -> Path:
        return self.root / "documents"

    def document_dir(self, uri: str) -> Path:
        return self.documents_dir / document_dir_name(uri)

    def payload_path(self, key: CacheKey) -> Path:
        fmt = self.registry.get(key.format_id)
        ext = fmt.primary_extension if fmt is not None else "bin"
        return self.document_dir(key.uri) / f"{key.format_id}.{ext}"

    def meta_path(self, key: CacheKey) -> Path:
        return self.document_dir(key.uri) / f"{key.format_id}{META_SUFFIX}"

    async def _write_atomic(self, path: Path, data: bytes) -> None:
        tmp_path = path.with_name(f".{path.name}.{uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp_path, path)
        except OSError:
            if await aiofiles.os.path.exists(tmp_path):
                await aiofiles.os.remove(tmp_path)
            raise

    async def get(self, key: CacheKey) -> CacheEntry | None:
        """Read an entry from disk."""
        meta_path = self.meta_path(key)
        try:
            async with aiofiles.open(meta_path, "rb") as f:
                raw_meta = await f.read()
            async with aiofiles.open(self.payload_path(key), "rb") as f:
                payload = await f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheStorageError(f"Failed to read cache entry {key}: {e}") from e

        try:
            return CacheEntry.from_meta(key, payload, orjson.loads(raw_meta))
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Ignoring corrupt cache entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> None:
        """Write an entry to disk, payload first."""
        directory = self.document_dir(entry.uri)
        try:
            await aiofiles.os.makedirs(directory, exist_ok=True)
            await self._write_atomic(self.payload_path(entry.key), entry.payload)
            await self._write_atomic(
                self.meta_path(entry.key), orjson.dumps(entry.meta(), option=orjson.OPT_INDENT_2)
            )
        except OSError as e:
            raise CacheStorageError(f"Failed to store cache entry {entry.key}: {e}") from e
        logger.debug("Stored %s (%d bytes) in %s", entry.key, len(entry.payload), directory)

    async def delete(self, key: CacheKey) -> bool:
        """Remove an entry, meta file first."""
        deleted = False
        for path in (self.meta_path(key), self.payload_path(key)):
            try:
                await aiofiles.os.remove(path)
                deleted = True
            except FileNotFoundError:
                continue
            except OSError as e:
                raise CacheStorageError(f"Failed to delete cache entry {key}: {e}") from e
        return deleted

    async def list_formats(self, uri: str) -> list[str]:
        directory = self.document_dir(uri)
        try:
            names = await aiofiles.os.listdir(directory)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise CacheStorageError(f"Failed to list cache entries of {uri}: {e}") from e
        return sorted(name[: -len(META_SUFFIX)] for name in names if name.endswith(META_SUFFIX))

    async def health_check(self) -> bool:
        """Check that the cache root exists or can be created."""
        try:
            await aiofiles.os.makedirs(self.documents_dir, exist_ok=True)
        except OSError as e:
            logger.warning("Cache root %s is not usable: %s", self.root, e)
            return False
        return True
