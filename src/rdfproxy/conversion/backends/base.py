"""Base converter backend interface.

A backend converts a payload between two formats. It declares the pairs it
supports through ``can_convert``; the conversion graph turns every supported
pair into an edge weighted by the backend kind.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Iterator

from rdfproxy.errors import ConversionError, RdfProxyError
from rdfproxy.formats.registry import Format, FormatRegistry
from rdfproxy.observability.metrics import record_conversion

logger = logging.getLogger(__name__)


class BackendKind(str, Enum):
    """Backend variants, each with its path-search cost."""

    NATIVE = "native"
    EXTERNAL = "external"

    @property
    def cost(self) -> int:
        return 1 if self is BackendKind.NATIVE else 10


class ConverterBackend(ABC):
    """Abstract base class for converter backends."""

    name: str
    kind: BackendKind
    # Backends allowed to produce html-target-only formats
    html_target_only: bool = False

    @abstractmethod
    def can_convert(self, source: Format, target: Format) -> bool:
        """Whether this backend converts ``source`` into ``target``."""
        ...

    @abstractmethod
    async def _convert(self, payload: bytes, source: Format, target: Format) -> bytes:
        """Run the conversion. Called only for supported pairs."""
        ...

    @property
    def cost(self) -> int:
        return self.kind.cost

    def supported_pairs(self, registry: FormatRegistry) -> Iterator[tuple[Format, Format]]:
        """Yield every (source, target) pair of the registry this backend supports."""
        for source in registry:
            for target in registry:
                if source != target and self.can_convert(source, target):
                    yield source, target

    async def convert(self, payload: bytes, source: Format, target: Format) -> bytes:
        """Convert a payload, recording the outcome.

        Raises:
            ConversionError: If the pair is unsupported or the input is malformed
            ProcessError: For external tool failures
        """
        if not self.can_convert(source, target):
            logger.error(
                "Backend %s was routed an unsupported conversion %s -> %s",
                self.name,
                source.id,
                target.id,
            )
            raise ConversionError(
                f"unsupported conversion {source.id} -> {target.id}", backend=self.name
            )

        start = time.perf_counter()
        try:
            result = await self._convert(payload, source, target)
        except RdfProxyError as e:
            record_conversion(self.name, type(e).__name__, time.perf_counter() - start)
            raise
        record_conversion(self.name, "success", time.perf_counter() - start)
        logger.debug(
            "%s converted %s -> %s (%d -> %d bytes)",
            self.name,
            source.id,
            target.id,
            len(payload),
            len(result),
        )
        return result

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({self.kind.value})>"
