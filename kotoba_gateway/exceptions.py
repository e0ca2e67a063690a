"""Base exception shared by every KotobaID gateway component."""


class KotobaGatewayError(Exception):
    """Base exception for all KotobaID gateway errors."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


class OperationValidationError(KotobaGatewayError):
    """Raised when an operation request is missing or has malformed fields.

    Attributes:
        operation: Operation that was requested.
        field: Offending field, if the failure is field-specific.
    """

    def __init__(self, message: str, operation: str, field: str | None = None):
        super().__init__(message=message, code="VALIDATION_ERROR")
        self.operation = operation
        self.field = field
