"""Unit tests for error classification."""

import json

import pytest
from fastapi.exceptions import RequestValidationError

from kotoba_gateway.errors import (
    HTTP_STATUS_BY_KIND,
    ErrorInfo,
    ErrorKind,
    GatewayOperationError,
    classify_error,
    error_response,
)
from kotoba_gateway.exceptions import OperationValidationError
from kotoba_gateway.ratelimit.exceptions import RateLimitExceededError
from kotoba_gateway.vertex.exceptions import (
    ConfigurationError,
    InitializationError,
    ModelCallError,
    ModelNotFoundError,
    ModelPermissionError,
    ModelRateLimitError,
    ModelTimeoutError,
    ModelUnavailableError,
    NotReadyError,
)
from kotoba_gateway.vertex.schemas import PERMISSION_SUGGESTIONS, UNAVAILABLE_SUGGESTIONS


class TestStatusMapping:
    """Tests for the kind to HTTP status table."""

    def test_every_kind_has_a_status(self):
        assert set(HTTP_STATUS_BY_KIND) == set(ErrorKind)

    @pytest.mark.parametrize(
        "kind,status",
        [
            (ErrorKind.validation, 400),
            (ErrorKind.service_unavailable, 503),
            (ErrorKind.rate_limited, 429),
            (ErrorKind.upstream, 500),
            (ErrorKind.configuration, 503),
            (ErrorKind.internal, 500),
        ],
    )
    def test_status_codes(self, kind, status):
        info = ErrorInfo(kind=kind, code="X", message="x")
        assert info.status_code == status


class TestClassifyTagged:
    """Tests for exceptions classified by type."""

    @pytest.mark.parametrize(
        "exc,kind",
        [
            (OperationValidationError("Text is required for translation", operation="translate"), ErrorKind.validation),
            (RateLimitExceededError(limit=100, retry_after=1.0), ErrorKind.rate_limited),
            (ModelRateLimitError(model_name="gemini-pro", status_code=429), ErrorKind.rate_limited),
            (ConfigurationError("GOOGLE_APPLICATION_CREDENTIALS environment variable not set"), ErrorKind.configuration),
            (InitializationError("Vertex AI initialization failed: boom"), ErrorKind.service_unavailable),
            (NotReadyError(), ErrorKind.service_unavailable),
            (ModelCallError(model_name="gemini-pro", detail="oops", status_code=500), ErrorKind.upstream),
            (ModelTimeoutError(model_name="gemini-pro", detail="request timed out"), ErrorKind.upstream),
            (ModelUnavailableError(model_name="gemini-pro", detail="refused"), ErrorKind.upstream),
            (ModelNotFoundError(model_name="gemini-pro", status_code=404), ErrorKind.upstream),
            (ModelPermissionError(model_name="gemini-pro", status_code=403), ErrorKind.upstream),
        ],
    )
    def test_tagged_kinds(self, exc, kind):
        info = classify_error(exc)

        assert info.kind is kind
        assert info.message == exc.message
        assert info.code == exc.code

    def test_validation_message_is_kept(self):
        info = classify_error(OperationValidationError("Kanji character is required", operation="explain-kanji"))

        assert info.message == "Kanji character is required"
        assert info.status_code == 400
        assert info.suggestions == []

    def test_configuration_has_setup_suggestions(self):
        info = classify_error(ConfigurationError("Service account file not found: /tmp/key.json"))

        assert "/tmp/key.json" in info.message
        assert info.suggestions == UNAVAILABLE_SUGGESTIONS

    def test_permission_denied_has_role_suggestions(self):
        info = classify_error(ModelPermissionError(model_name="gemini-pro", status_code=403))

        assert info.suggestions == PERMISSION_SUGGESTIONS

    def test_handshake_denied_has_role_suggestions(self):
        """Test a handshake that failed on permissions points at the roles."""
        cause = ModelPermissionError(model_name="gemini-pro", status_code=403)
        info = classify_error(InitializationError("Vertex AI initialization failed", cause=cause))

        assert info.kind is ErrorKind.service_unavailable
        assert info.suggestions == PERMISSION_SUGGESTIONS

    def test_request_validation_error(self):
        info = classify_error(RequestValidationError([]))

        assert info.kind is ErrorKind.validation
        assert info.message == "Invalid request body"

    def test_gateway_operation_error_keeps_its_info(self):
        info = ErrorInfo(kind=ErrorKind.upstream, code="UPSTREAM_ERROR", message="AI model request failed")
        exc = GatewayOperationError(info, cause=RuntimeError("boom"))

        assert classify_error(exc) is info


class TestClassifyUntagged:
    """Tests for foreign exceptions."""

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("bad value"),
            KeyError("missing"),
            RuntimeError(),
            TypeError("unsupported operand"),
            ZeroDivisionError("division by zero"),
            Exception(""),
        ],
    )
    def test_always_one_kind(self, exc):
        """Test classification is total."""
        info = classify_error(exc)

        assert info.kind in ErrorKind
        assert info.status_code in (400, 429, 500, 503)

    def test_unknown_is_internal(self):
        info = classify_error(ValueError("database password is hunter2"))

        assert info.kind is ErrorKind.internal
        assert info.status_code == 500
        assert info.message == "Internal server error"
        assert "hunter2" not in info.message

    @pytest.mark.parametrize(
        "message",
        ["Too many requests", "429 from upstream", "RESOURCE_EXHAUSTED: quota exceeded"],
    )
    def test_rate_limit_signals(self, message):
        assert classify_error(Exception(message)).kind is ErrorKind.rate_limited

    @pytest.mark.parametrize("message", ["payload 14290 bytes", "request id 4291", "took 1429ms"])
    def test_status_code_must_stand_alone(self, message):
        """Test digits that merely contain 429 are not a rate limit."""
        assert classify_error(Exception(message)).kind is ErrorKind.internal

    def test_product_name_is_not_a_signal(self):
        """Test an untagged error mentioning Vertex AI keeps the fallback."""
        info = classify_error(RuntimeError("Vertex AI client closed"), fallback=ErrorKind.upstream)

        assert info.kind is ErrorKind.upstream
        assert info.suggestions == []

    def test_fallback_kind(self):
        info = classify_error(RuntimeError("socket closed"), fallback=ErrorKind.upstream)

        assert info.kind is ErrorKind.upstream
        assert info.message == "AI model request failed"


class TestErrorResponse:
    """Tests for the JSON error body."""

    def test_body_and_status(self):
        info = classify_error(OperationValidationError("Message is required", operation="chat"))

        response = error_response(info)
        body = json.loads(response.body)

        assert response.status_code == 400
        assert body["success"] is False
        assert body["error"] == "Message is required"
        assert body["kind"] == "validation"
        assert body["code"] == "VALIDATION_ERROR"
        assert body["suggestions"] == []
        assert "timestamp" in body
        assert "details" not in body

    def test_details_and_headers(self):
        info = classify_error(RateLimitExceededError(limit=100, retry_after=2.0))

        response = error_response(info, details="debug info", headers={"Retry-After": "3"})
        body = json.loads(response.body)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "3"
        assert body["details"] == "debug info"
