"""Execution of conversion paths."""

from __future__ import annotations

import logging

from rdfproxy.conversion.graph import ConversionPath

logger = logging.getLogger(__name__)


async def execute_path(path: ConversionPath, payload: bytes) -> bytes:
    """Run each edge of a path, feeding the output of one into the next.

    An identity path returns a copy of the payload without invoking any
    backend. The first failing edge aborts the whole path; intermediate
    results are discarded.
    """
    if path.is_identity:
        return bytes(payload)

    data = payload
    for hop, edge in enumerate(path, start=1):
        logger.debug("Hop %d/%d: %s", hop, len(path), edge)
        data = await edge.backend.convert(data, edge.source, edge.target)
    return data
