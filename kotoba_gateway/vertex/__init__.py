"""Vertex AI module - connection lifecycle and model client."""

from .client import ModelClient, VertexModelClient, create_vertex_client
from .exceptions import (
    ConfigurationError,
    InitializationError,
    NotReadyError,
    ModelCallError,
    ModelTimeoutError,
    ModelUnavailableError,
    ModelRateLimitError,
    ModelPermissionError,
    ModelNotFoundError,
)
from .manager import ConnectionManager
from .schemas import (
    ConnectionState,
    StatusSnapshot,
    PermissionReport,
    UNAVAILABLE_SUGGESTIONS,
    PERMISSION_SUGGESTIONS,
)


__all__ = [
    # Client
    "ModelClient",
    "VertexModelClient",
    "create_vertex_client",
    # Exceptions
    "ConfigurationError",
    "InitializationError",
    "NotReadyError",
    "ModelCallError",
    "ModelTimeoutError",
    "ModelUnavailableError",
    "ModelRateLimitError",
    "ModelPermissionError",
    "ModelNotFoundError",
    # Manager
    "ConnectionManager",
    # Schemas
    "ConnectionState",
    "StatusSnapshot",
    "PermissionReport",
    "UNAVAILABLE_SUGGESTIONS",
    "PERMISSION_SUGGESTIONS",
]
