"""Fetch-and-convert endpoint.

GET /?uri=<document URI>[&query-accept=<media type>]

The target format is taken from the Accept header; ``*/*`` or no header
selects the configured default format. ``query-accept`` is the media type
requested from the upstream source.
"""

from __future__ import annotations

import posixpath
import re
from urllib.parse import unquote, urlsplit

from fastapi import APIRouter, Depends, Header, Query
from starlette.responses import Response

from rdfproxy.api.deps import get_proxy
from rdfproxy.api.errors import BadRequestError, Result, UnsupportedMediaTypeApiError
from rdfproxy.config import settings
from rdfproxy.errors import UnsupportedMediaTypeError
from rdfproxy.proxy import ConversionProxy

router = APIRouter(tags=["conversion"])

SUPPORTED_SCHEMES = ("http", "https", "file")
CACHE_HEADER = "X-Rdfproxy-Cache"

_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9._-]+')


def validate_uri(uri: str | None) -> str:
    """Check the ``uri`` parameter.

    Raises:
        BadRequestError: If it is missing or not an absolute http(s)/file URI
    """
    if not uri or not uri.strip():
        raise BadRequestError("Missing required query parameter 'uri'")
    uri = uri.strip()
    parts = urlsplit(uri)
    if parts.scheme.lower() not in SUPPORTED_SCHEMES:
        raise BadRequestError(
            f"Invalid 'uri': '{uri}' (expected an absolute {', '.join(SUPPORTED_SCHEMES)} URI)"
        )
    if parts.scheme.lower() != "file" and not parts.netloc:
        raise BadRequestError(f"Invalid 'uri': '{uri}' has no host")
    if parts.scheme.lower() == "file" and not parts.path:
        raise BadRequestError(f"Invalid 'uri': '{uri}' has no path")
    return uri


def download_name(uri: str, extension: str) -> str:
    """File name offered in Content-Disposition."""
    parts = urlsplit(uri)
    base = posixpath.basename(unquote(parts.path).rstrip("/"))
    stem = base.rsplit(".", 1)[0] if "." in base.strip(".") else base
    stem = _UNSAFE_FILENAME_CHARS.sub("_", stem or parts.netloc).strip("._")
    return f"{stem or 'document'}.{extension}"


@router.get(
    "/",
    response_class=Response,
    summary="Fetch a document and convert it to the requested format",
    responses={
        400: {"model": Result, "description": "Missing or invalid uri"},
        406: {"model": Result, "description": "No conversion path to the requested format"},
        415: {"model": Result, "description": "Unsupported media type"},
        422: {"model": Result, "description": "Conversion failed"},
        502: {"model": Result, "description": "Upstream document unavailable or unidentifiable"},
        504: {"model": Result, "description": "Converter timed out"},
    },
)
async def convert_document(
    uri: str | None = Query(default=None, description="URI of the source document"),
    query_accept: str | None = Query(
        default=None,
        alias="query-accept",
        description="Media type requested from the upstream source",
    ),
    accept: str | None = Header(default=None),
    proxy: ConversionProxy = Depends(get_proxy),
) -> Response:
    """Serve a document in the format named by the Accept header."""
    uri = validate_uri(uri)

    try:
        target = proxy.registry.from_accept(accept, default=settings.default_format)
    except UnsupportedMediaTypeError as e:
        raise UnsupportedMediaTypeApiError(e.media_type) from e

    if query_accept is not None and proxy.registry.by_media_type(query_accept) is None:
        raise UnsupportedMediaTypeApiError(query_accept)

    result = await proxy.get(uri, target, query_accept=query_accept)

    filename = download_name(uri, target.primary_extension)
    return Response(
        content=result.payload,
        media_type=result.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            CACHE_HEADER: "hit" if result.cache_hit else "miss",
        },
    )
