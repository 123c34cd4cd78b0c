"""Unit tests for errors.py error handlers."""

import json
from unittest.mock import MagicMock
from unittest.mock import patch

import pydantic
import pytest
from fastapi import Request

from sso_sync_api.enums import ErrorKind
from sso_sync_api.errors import handle_broad_exceptions
from sso_sync_api.errors import handle_pydantic_validation_errors
from sso_sync_api.errors import handle_sync_errors
from sso_sync_api.errors import status_for_kind
from sso_sync_api.sync.errors import MisconfiguredError
from sso_sync_api.sync.errors import NotFoundError
from sso_sync_api.sync.errors import RemoteWriteFailedError


class TestHandleBroadExceptions:
    """Tests for handle_broad_exceptions middleware."""

    @pytest.mark.asyncio
    @patch("sso_sync_api.errors.log_response_info")
    async def test_successful_request(self, mock_log):
        """Test middleware passes through successful requests."""
        mock_request = MagicMock(spec=Request)
        mock_response = MagicMock()

        async def mock_call_next(request):
            return mock_response

        result = await handle_broad_exceptions(mock_request, mock_call_next)

        assert result == mock_response
        mock_log.assert_not_called()

    @pytest.mark.asyncio
    @patch("sso_sync_api.errors.log_response_info")
    async def test_exception_returns_500(self, mock_log):
        """Test middleware catches exceptions and returns an internal error body."""
        mock_request = MagicMock(spec=Request)
        mock_request.state.request_body = None  # Avoid MagicMock in json.dumps
        mock_request.state.request_id = "req-500"

        async def mock_call_next(request):
            raise ValueError("Test error")

        result = await handle_broad_exceptions(mock_request, mock_call_next)

        assert result.status_code == 500
        body = json.loads(result.body)
        assert body["error_kind"] == "internal"
        assert body["error_type"] == "ValueError"
        assert body["request_id"] == "req-500"
        mock_log.assert_called_once()


class TestHandlePydanticValidationErrors:
    """Tests for handle_pydantic_validation_errors handler."""

    @pytest.mark.asyncio
    @patch("sso_sync_api.errors.log_response_info")
    async def test_validation_error(self, mock_log):
        """Test handling pydantic validation errors."""
        mock_request = MagicMock(spec=Request)
        mock_request.state.request_body = None

        class TestModel(pydantic.BaseModel):
            name: str
            value: int

        with pytest.raises(pydantic.ValidationError) as exc_info:
            TestModel(name=123, value="not_int")

        result = await handle_pydantic_validation_errors(mock_request, exc_info.value)

        assert result.status_code == 422
        body = json.loads(result.body)
        assert len(body["detail"]) == 2
        mock_log.assert_called_once()


class TestHandleSyncErrors:
    """Tests for handle_sync_errors handler."""

    @pytest.mark.asyncio
    @patch("sso_sync_api.errors.log_response_info")
    async def test_not_found(self, mock_log):
        """NotFoundError maps to 404 with its details in the body."""
        mock_request = MagicMock(spec=Request)
        exc = NotFoundError("User not found: u-1", user_id="u-1")

        result = await handle_sync_errors(mock_request, exc)

        assert result.status_code == 404
        assert json.loads(result.body) == {
            "error": "User not found: u-1",
            "error_kind": "not_found",
            "user_id": "u-1",
        }
        mock_log.assert_called_once()

    @pytest.mark.asyncio
    @patch("sso_sync_api.errors.log_response_info")
    async def test_misconfigured(self, mock_log):
        """MisconfiguredError maps to 400."""
        mock_request = MagicMock(spec=Request)

        result = await handle_sync_errors(mock_request, MisconfiguredError("Tenant t-1 has no endpoint"))

        assert result.status_code == 400
        assert json.loads(result.body)["error_kind"] == "misconfigured"

    @pytest.mark.asyncio
    @patch("sso_sync_api.errors.log_response_info")
    async def test_remote_write_failed(self, mock_log):
        """Tenant store rejections map to 502 and keep the raw store text."""
        mock_request = MagicMock(spec=Request)
        exc = RemoteWriteFailedError("Write rejected", remote_error="duplicate key value")

        result = await handle_sync_errors(mock_request, exc)

        assert result.status_code == 502
        assert json.loads(result.body)["remote_error"] == "duplicate key value"


class TestStatusForKind:
    """Tests for the error kind to HTTP status mapping."""

    @pytest.mark.parametrize(
        "kind,expected",
        [
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.MISCONFIGURED, 400),
            (ErrorKind.NO_VALID_COLUMNS, 400),
            (ErrorKind.REMOTE_READ_FAILED, 502),
            (ErrorKind.REMOTE_WRITE_FAILED, 502),
            (ErrorKind.INTERNAL, 500),
        ],
    )
    def test_error_kinds(self, kind, expected):
        assert status_for_kind(kind) == expected

    def test_unmapped_kind_is_ok(self):
        """Kinds without an error status fall back to 200."""
        assert status_for_kind(None) == 200
