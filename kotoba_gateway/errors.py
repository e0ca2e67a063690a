"""Classification of gateway failures into a closed set of error kinds.

Every failure surfaced to a client goes through classify_error(), which
maps it to exactly one ErrorKind. Tagged exceptions are matched by type;
anything else is matched against a short table of known message
fragments and otherwise falls back to the caller-supplied kind.
"""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from kotoba_gateway.exceptions import KotobaGatewayError, OperationValidationError
from kotoba_gateway.ratelimit.exceptions import RateLimitExceededError
from kotoba_gateway.vertex.exceptions import (
    ConfigurationError,
    InitializationError,
    ModelCallError,
    ModelPermissionError,
    ModelRateLimitError,
    NotReadyError,
)
from kotoba_gateway.vertex.schemas import PERMISSION_SUGGESTIONS, UNAVAILABLE_SUGGESTIONS


class ErrorKind(str, Enum):
    """Closed taxonomy of gateway failures."""

    configuration = "configuration"
    service_unavailable = "service_unavailable"
    upstream = "upstream"
    validation = "validation"
    rate_limited = "rate_limited"
    internal = "internal"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.validation: 400,
    ErrorKind.service_unavailable: 503,
    ErrorKind.rate_limited: 429,
    ErrorKind.upstream: 500,
    ErrorKind.configuration: 503,
    ErrorKind.internal: 500,
}

GENERIC_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.configuration: "AI service is not configured",
    ErrorKind.service_unavailable: "AI service temporarily unavailable",
    ErrorKind.upstream: "AI model request failed",
    ErrorKind.validation: "Invalid request",
    ErrorKind.rate_limited: "Too many requests, please try again later",
    ErrorKind.internal: "Internal server error",
}

GENERIC_CODES: dict[ErrorKind, str] = {
    ErrorKind.configuration: "CONFIGURATION_ERROR",
    ErrorKind.service_unavailable: "SERVICE_UNAVAILABLE",
    ErrorKind.upstream: "UPSTREAM_ERROR",
    ErrorKind.validation: "VALIDATION_ERROR",
    ErrorKind.rate_limited: "RATE_LIMITED",
    ErrorKind.internal: "INTERNAL_ERROR",
}

# Fragments reported by foreign exceptions (client libraries, the rate
# limiting layer) that have no tagged type of their own.
MESSAGE_SIGNALS: tuple[tuple[re.Pattern[str], ErrorKind], ...] = (
    (re.compile(r"Too many requests", re.IGNORECASE), ErrorKind.rate_limited),
    (re.compile(r"\bRESOURCE_EXHAUSTED\b"), ErrorKind.rate_limited),
    (re.compile(r"\b429\b"), ErrorKind.rate_limited),
)


class ErrorInfo(BaseModel):
    """Classified failure returned to the caller.

    Attributes:
        kind: Error kind from the closed taxonomy.
        code: Machine-readable error code.
        message: Human-readable message, free of internal detail.
        suggestions: Remediation hints, possibly empty.
    """

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind = Field(..., description="Error kind")
    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable message")
    suggestions: list[str] = Field(default_factory=list, description="Remediation hints")

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]


class GatewayOperationError(KotobaGatewayError):
    """Raised by the request gateway with an already classified failure.

    Attributes:
        info: The classified failure.
        cause: Underlying exception.
    """

    def __init__(self, info: ErrorInfo, cause: BaseException | None = None):
        super().__init__(message=info.message, code=info.code)
        self.info = info
        self.cause = cause


def _tagged_kind(exc: BaseException) -> ErrorKind | None:
    if isinstance(exc, GatewayOperationError):
        return exc.info.kind
    if isinstance(exc, (OperationValidationError, RequestValidationError)):
        return ErrorKind.validation
    if isinstance(exc, (RateLimitExceededError, ModelRateLimitError)):
        return ErrorKind.rate_limited
    if isinstance(exc, ConfigurationError):
        return ErrorKind.configuration
    if isinstance(exc, (InitializationError, NotReadyError)):
        return ErrorKind.service_unavailable
    if isinstance(exc, ModelCallError):
        return ErrorKind.upstream
    return None


def _signal_kind(exc: BaseException) -> ErrorKind | None:
    text = str(exc)
    for pattern, kind in MESSAGE_SIGNALS:
        if pattern.search(text):
            return kind
    return None


def _suggestions(exc: BaseException, kind: ErrorKind) -> list[str]:
    cause = getattr(exc, "cause", None)
    if isinstance(exc, ModelPermissionError) or isinstance(cause, ModelPermissionError):
        return list(PERMISSION_SUGGESTIONS)
    if kind in (ErrorKind.service_unavailable, ErrorKind.configuration):
        return list(UNAVAILABLE_SUGGESTIONS)
    return []


def classify_error(exc: BaseException, fallback: ErrorKind = ErrorKind.internal) -> ErrorInfo:
    """Map any exception to exactly one ErrorKind.

    Args:
        exc: The failure to classify.
        fallback: Kind used when neither the type nor the message matches.

    Returns:
        ErrorInfo for the failure.
    """
    if isinstance(exc, GatewayOperationError):
        return exc.info

    kind = _tagged_kind(exc)
    if kind is not None:
        if isinstance(exc, RequestValidationError):
            message, code = "Invalid request body", GENERIC_CODES[kind]
        else:
            message, code = exc.message, exc.code
        return ErrorInfo(kind=kind, code=code, message=message, suggestions=_suggestions(exc, kind))

    kind = _signal_kind(exc) or fallback
    return ErrorInfo(
        kind=kind,
        code=GENERIC_CODES[kind],
        message=GENERIC_MESSAGES[kind],
        suggestions=_suggestions(exc, kind),
    )


def error_response(
    info: ErrorInfo,
    details: str | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Render a classified failure as the standard JSON error body."""
    content: dict[str, Any] = {
        "success": False,
        "error": info.message,
        "kind": info.kind.value,
        "code": info.code,
        "suggestions": info.suggestions,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=info.status_code, content=content, headers=headers)
