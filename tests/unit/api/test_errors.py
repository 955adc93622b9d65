"""Tests for structured error responses."""

import orjson
import pytest

from rdfproxy.api.errors import (
    STATUS_BY_KIND,
    BadRequestError,
    MessageType,
    UnsupportedMediaTypeApiError,
    api_exception_handler,
    proxy_exception_handler,
    status_for,
)
from rdfproxy.errors import FailureKind, ProxyError


class TestStatusMapping:
    """Tests for failure kind to HTTP status mapping."""

    def test_every_kind_has_a_status(self) -> None:
        """No failure kind is left unmapped."""
        assert set(STATUS_BY_KIND) == set(FailureKind)

    @pytest.mark.parametrize(
        ("kind", "status"),
        [
            (FailureKind.UNSUPPORTED_MEDIA_TYPE, 415),
            (FailureKind.NO_PATH, 406),
            (FailureKind.FETCH, 502),
            (FailureKind.IDENTIFICATION, 502),
            (FailureKind.CONVERSION, 422),
            (FailureKind.TIMEOUT, 504),
            (FailureKind.SPAWN, 500),
            (FailureKind.INTERNAL, 500),
        ],
    )
    def test_status_for(self, kind: FailureKind, status: int) -> None:
        """Each kind maps to its status code."""
        assert status_for(ProxyError(kind, "x")) == status


class TestApiErrors:
    """Tests for API error classes."""

    def test_bad_request(self) -> None:
        """Bad requests use status 400."""
        error = BadRequestError("Missing uri")
        assert error.status_code == 400
        result = error.to_result()
        assert result.messages[0].code == "BadRequest"
        assert result.messages[0].text == "Missing uri"
        assert result.messages[0].message_type == MessageType.ERROR

    def test_unsupported_media_type(self) -> None:
        """Unsupported media types use status 415."""
        error = UnsupportedMediaTypeApiError("image/png")
        assert error.status_code == 415
        assert error.code == "UnsupportedMediaType"
        assert "image/png" in error.text

    def test_message_serializes_with_alias(self) -> None:
        """messageType is emitted in camel case."""
        data = BadRequestError("x").to_result().model_dump(by_alias=True)
        assert data["messages"][0]["messageType"] == "Error"


class TestHandlers:
    """Tests for exception handlers."""

    @pytest.mark.asyncio
    async def test_api_exception_handler(self) -> None:
        """API errors render their Result."""
        response = await api_exception_handler(None, BadRequestError("nope"))  # type: ignore[arg-type]
        assert response.status_code == 400
        assert orjson.loads(response.body)["messages"][0]["text"] == "nope"

    @pytest.mark.asyncio
    async def test_proxy_exception_handler(self) -> None:
        """Proxy errors carry their kind as code."""
        error = ProxyError(FailureKind.NO_PATH, "No conversion path from 'turtle' to 'html'")
        response = await proxy_exception_handler(None, error)  # type: ignore[arg-type]
        body = orjson.loads(response.body)
        assert response.status_code == 406
        assert body["messages"][0]["code"] == "NoConversionPath"
        assert body["messages"][0]["messageType"] == "Error"

    @pytest.mark.asyncio
    async def test_server_side_failures_are_exceptions(self) -> None:
        """5xx failures are reported as exceptions."""
        error = ProxyError(FailureKind.TIMEOUT, "tool killed")
        response = await proxy_exception_handler(None, error)  # type: ignore[arg-type]
        assert response.status_code == 504
        assert orjson.loads(response.body)["messages"][0]["messageType"] == "Exception"
