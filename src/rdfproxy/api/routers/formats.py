"""Format catalogue endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from rdfproxy.api.deps import get_proxy
from rdfproxy.proxy import ConversionProxy

router = APIRouter(tags=["formats"])


@router.get("/formats")
async def list_formats(proxy: ConversionProxy = Depends(get_proxy)) -> dict[str, Any]:
    """Known formats, their capabilities and the formats each converts to."""
    engine = proxy.engine
    unreachable = {fmt.id for fmt in engine.unreachable}
    formats = []
    for fmt in engine.registry:
        formats.append(
            {
                "id": fmt.id,
                "label": fmt.label,
                "mediaType": fmt.canonical_media_type,
                "aliases": sorted(fmt.aliases),
                "extensions": list(fmt.extensions),
                "capabilities": sorted(c.value for c in fmt.capabilities),
                "producible": fmt.id not in unreachable,
                "convertsTo": [t.id for t in engine.graph.reachable_from(fmt)],
            }
        )
    backends = [
        {
            "name": backend.name,
            "kind": backend.kind.value,
            "htmlTargetOnly": backend.html_target_only,
        }
        for backend in engine.backends
    ]
    return {"formats": formats, "backends": backends}
