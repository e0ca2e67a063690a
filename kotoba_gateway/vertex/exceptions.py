"""Exceptions raised by the Vertex AI connection layer.

Failures are tagged where they happen: configuration and handshake
problems by the connection manager, remote call problems by the model
client.
"""

from kotoba_gateway.exceptions import KotobaGatewayError


class InitializationError(KotobaGatewayError):
    """Raised when the connection handshake fails.

    Attributes:
        cause: Underlying failure, if any.
    """

    def __init__(self, message: str, cause: Exception | None = None, code: str = "INITIALIZATION_FAILED"):
        super().__init__(message=message, code=code)
        self.cause = cause


class ConfigurationError(InitializationError):
    """Raised when the service account configuration is missing or invalid.

    Attributes:
        credentials_path: Resolved path that was checked, if one was set.
    """

    def __init__(self, message: str, credentials_path: str | None = None):
        super().__init__(message=message, code="CONFIGURATION_ERROR")
        self.credentials_path = credentials_path


class NotReadyError(KotobaGatewayError):
    """Raised when an operation needs a ready connection and there is none."""

    def __init__(self, message: str = "Vertex AI not initialized. Call ensure_ready() first."):
        super().__init__(message=message, code="NOT_READY")


class ModelCallError(KotobaGatewayError):
    """Raised when a call to the remote model fails.

    Attributes:
        model_name: Model that was called.
        status_code: HTTP status returned by Vertex AI, if any.
        detail: Error detail from the response or transport.
    """

    default_code = "MODEL_CALL_FAILED"

    def __init__(self, model_name: str, detail: str = "", status_code: int | None = None):
        prefix = f"Vertex AI call to '{model_name}' failed"
        if status_code is not None:
            prefix = f"{prefix} with status {status_code}"
        super().__init__(
            message=f"{prefix}: {detail}" if detail else prefix,
            code=self.default_code,
        )
        self.model_name = model_name
        self.status_code = status_code
        self.detail = detail


class ModelTimeoutError(ModelCallError):
    """Raised when Vertex AI does not respond within the transport timeout."""

    default_code = "MODEL_TIMEOUT"


class ModelUnavailableError(ModelCallError):
    """Raised when Vertex AI cannot be reached."""

    default_code = "MODEL_UNAVAILABLE"


class ModelRateLimitError(ModelCallError):
    """Raised when Vertex AI rejects a call for quota or rate reasons."""

    default_code = "MODEL_RATE_LIMITED"


class ModelPermissionError(ModelCallError):
    """Raised when the service account is not allowed to call the model."""

    default_code = "MODEL_PERMISSION_DENIED"


class ModelNotFoundError(ModelCallError):
    """Raised when the configured model does not exist in the project/location."""

    default_code = "MODEL_NOT_FOUND"
