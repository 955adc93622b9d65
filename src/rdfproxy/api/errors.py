"""Structured error responses for rdfproxy.

Every failure is reported as a Result holding one or more Messages, with
the HTTP status derived from the failure kind.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from rdfproxy.errors import FailureKind, ProxyError, UnsupportedMediaTypeError

# HTTP status per failure kind
STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.UNSUPPORTED_MEDIA_TYPE: 415,
    FailureKind.NO_PATH: 406,
    FailureKind.FETCH: 502,
    FailureKind.IDENTIFICATION: 502,
    FailureKind.CONVERSION: 422,
    FailureKind.TIMEOUT: 504,
    FailureKind.SPAWN: 500,
    FailureKind.EXTERNAL_TOOL: 500,
    FailureKind.STORAGE: 500,
    FailureKind.INTERNAL: 500,
}


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """Error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        """Convert to Result format."""
        return _result(self.code, self.text, self.message_type)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


class UnsupportedMediaTypeApiError(ApiError):
    """Requested media type does not map to a format (415)."""

    def __init__(self, media_type: str):
        super().__init__(
            status_code=415,
            code=FailureKind.UNSUPPORTED_MEDIA_TYPE.value,
            text=str(UnsupportedMediaTypeError(media_type)),
        )


def status_for(error: ProxyError) -> int:
    return STATUS_BY_KIND.get(error.kind, 500)


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for API errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def proxy_exception_handler(request: Request, exc: ProxyError) -> JSONResponse:
    """Exception handler for proxy failures."""
    status_code = status_for(exc)
    message_type = MessageType.EXCEPTION if status_code >= 500 else MessageType.ERROR
    return JSONResponse(
        status_code=status_code,
        content=_result(exc.kind.value, exc.message, message_type).model_dump(by_alias=True),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    return JSONResponse(
        status_code=500,
        content=_result(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ).model_dump(by_alias=True),
    )
