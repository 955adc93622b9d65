"""Error taxonomy for the conversion engine and caching proxy.

Lower layers raise the specific errors below; the proxy wraps whatever
escaped a request into a single ProxyError that is shared with every
caller waiting on the same cache key.
"""

from __future__ import annotations

from enum import Enum


class RdfProxyError(Exception):
    """Base class for all rdfproxy errors."""


class IdentificationUnknownError(RdfProxyError):
    """No signal identified the serialization format of a document."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        message = "Unable to identify the document's serialization format"
        super().__init__(f"{message}: {detail}" if detail else message)


class UnsupportedMediaTypeError(RdfProxyError):
    """A requested media type does not map to any known format."""

    def __init__(self, media_type: str) -> None:
        self.media_type = media_type
        super().__init__(f"Unsupported media type: '{media_type}'")


class NoPathError(RdfProxyError):
    """No chain of installed backends converts source into target."""

    def __init__(self, source_id: str, target_id: str, reason: str | None = None) -> None:
        self.source_id = source_id
        self.target_id = target_id
        self.reason = reason
        text = f"No conversion path from '{source_id}' to '{target_id}'"
        super().__init__(f"{text}: {reason}" if reason else text)


class ConversionError(RdfProxyError):
    """A backend failed to convert a payload."""

    def __init__(self, reason: str, backend: str | None = None) -> None:
        self.reason = reason
        self.backend = backend
        super().__init__(f"[{backend}] {reason}" if backend else reason)


class ProcessError(RdfProxyError):
    """Base class for external process failures."""

    def __init__(self, command: str, message: str) -> None:
        self.command = command
        super().__init__(message)


class SpawnError(ProcessError):
    """The external tool could not be started (missing binary, permissions)."""

    def __init__(self, command: str, reason: str) -> None:
        self.reason = reason
        super().__init__(command, f"Failed to run '{command}': {reason}")


class ProcessTimeoutError(ProcessError):
    """The external tool did not finish within its time budget."""

    def __init__(self, command: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(command, f"'{command}' did not finish within {timeout:g}s and was killed")


class ExternalToolError(ProcessError):
    """The external tool exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr_excerpt: str) -> None:
        self.exit_code = exit_code
        self.stderr_excerpt = stderr_excerpt
        super().__init__(
            command,
            f"'{command}' returned with non-zero exit status {exit_code}. "
            f"stderr:\n{stderr_excerpt}",
        )


class FetchError(RdfProxyError):
    """Retrieving the remote document failed."""

    def __init__(self, uri: str, reason: str, status_code: int | None = None) -> None:
        self.uri = uri
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch '{uri}': {reason}")


class CacheStorageError(RdfProxyError):
    """Reading from or writing to the persistent cache failed."""


class FailureKind(str, Enum):
    """Kind of failure surfaced at the request boundary."""

    UNSUPPORTED_MEDIA_TYPE = "UnsupportedMediaType"
    FETCH = "FetchFailed"
    IDENTIFICATION = "IdentificationUnknown"
    NO_PATH = "NoConversionPath"
    CONVERSION = "ConversionFailed"
    SPAWN = "ToolSpawnFailed"
    TIMEOUT = "ToolTimeout"
    EXTERNAL_TOOL = "ToolFailed"
    STORAGE = "CacheStorageFailed"
    INTERNAL = "InternalError"


_KIND_BY_TYPE: tuple[tuple[type[Exception], FailureKind], ...] = (
    (UnsupportedMediaTypeError, FailureKind.UNSUPPORTED_MEDIA_TYPE),
    (FetchError, FailureKind.FETCH),
    (IdentificationUnknownError, FailureKind.IDENTIFICATION),
    (NoPathError, FailureKind.NO_PATH),
    (ConversionError, FailureKind.CONVERSION),
    (SpawnError, FailureKind.SPAWN),
    (ProcessTimeoutError, FailureKind.TIMEOUT),
    (ExternalToolError, FailureKind.EXTERNAL_TOOL),
    (CacheStorageError, FailureKind.STORAGE),
)


class ProxyError(RdfProxyError):
    """Aggregated failure of a proxy request."""

    def __init__(self, kind: FailureKind, message: str, cause: Exception | None = None) -> None:
        self.kind = kind
        self.message = message
        self.cause = cause
        super().__init__(message)

    @classmethod
    def from_exception(cls, exc: Exception) -> ProxyError:
        """Wrap a lower-layer error, keeping its kind."""
        if isinstance(exc, ProxyError):
            return exc
        for exc_type, kind in _KIND_BY_TYPE:
            if isinstance(exc, exc_type):
                return cls(kind, str(exc), exc)
        return cls(FailureKind.INTERNAL, f"Unexpected error: {exc}", exc)
