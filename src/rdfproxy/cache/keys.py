"""Cache key schema for rdfproxy.

A cache entry is addressed by (document URI, format id).

Redis key format: {prefix}:doc:{uri_b64}:{format_id}:{variant}

Where:
- prefix: "rdfproxy" (namespace for shared Redis instances)
- uri_b64: Base64URL encoded document URI
- format_id: registry format id ("turtle", "html", ...)
- variant: "bytes" (payload) or "meta" (media type, stored_at, source format)

The set of formats stored for a URI lives at {prefix}:doc:{uri_b64}:formats.

Local directory layout: {root}/documents/{nameified-uri}-{sha256[:16]}/
"""

from __future__ import annotations

import base64
import hashlib
import re
from typing import NamedTuple

_NON_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_NAME_LENGTH = 80


class CacheKey(NamedTuple):
    """Identity of a cache entry."""

    uri: str
    format_id: str

    def __str__(self) -> str:
        return f"{self.uri} [{self.format_id}]"


def encode_uri(uri: str) -> str:
    """Encode a URI to Base64URL without padding."""
    return base64.urlsafe_b64encode(uri.encode("utf-8")).decode("ascii").rstrip("=")


def nameify(uri: str) -> str:
    """Turn a URI into a readable, file-system safe name.

    The result is not unique; combine it with a hash of the URI.
    """
    name = uri.split("://", 1)[-1]
    name = _NON_NAME_CHARS.sub("_", name).strip("._")
    return name[:_MAX_NAME_LENGTH] or "document"


def document_dir_name(uri: str) -> str:
    """Directory name holding every cached format of one URI."""
    digest = hashlib.sha256(uri.encode("utf-8")).hexdigest()[:16]
    return f"{nameify(uri)}-{digest}"


class CacheKeys:
    """Redis key generator following consistent naming convention."""

    PREFIX = "rdfproxy"

    @classmethod
    def payload(cls, key: CacheKey) -> str:
        """Key for converted document bytes."""
        return f"{cls.PREFIX}:doc:{encode_uri(key.uri)}:{key.format_id}:bytes"

    @classmethod
    def meta(cls, key: CacheKey) -> str:
        """Key for entry metadata."""
        return f"{cls.PREFIX}:doc:{encode_uri(key.uri)}:{key.format_id}:meta"

    @classmethod
    def formats(cls, uri: str) -> str:
        """Key for the set of format ids stored for a URI."""
        return f"{cls.PREFIX}:doc:{encode_uri(uri)}:formats"
