"""Schemas describing the Vertex AI connection state."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from kotoba_gateway.config import GatewayConfigView


class ConnectionState(str, Enum):
    """Lifecycle state of the shared Vertex AI connection."""

    uninitialized = "uninitialized"
    initializing = "initializing"
    ready = "ready"
    failed = "failed"


class StatusSnapshot(BaseModel):
    """Point-in-time view of the connection state and configuration.

    Attributes:
        initialized: Whether the connection is ready.
        state: Current lifecycle state.
        error: Message of the last initialization failure, if any.
        config: Public connection parameters.
    """

    model_config = ConfigDict(frozen=True)

    initialized: bool = Field(..., description="Whether the connection is ready")
    state: ConnectionState = Field(..., description="Current lifecycle state")
    error: str | None = Field(default=None, description="Last initialization error")
    config: GatewayConfigView = Field(..., description="Public connection parameters")


class PermissionReport(BaseModel):
    """Result of a permission diagnostic against the model."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    has_permissions: bool
    error: str | None = None
    suggestions: list[str] = Field(default_factory=list)


# Remediation hints shown when the connection cannot be established.
UNAVAILABLE_SUGGESTIONS = [
    "Check if service account file exists",
    "Verify Google Cloud project ID is correct",
    "Ensure Vertex AI API is enabled",
    "Check service account permissions",
]

# Remediation hints shown when the service account is denied.
PERMISSION_SUGGESTIONS = [
    'Ensure service account has "Vertex AI User" role',
    'Ensure service account has "AI Platform Developer" role',
    "Check if Vertex AI API is enabled in your project",
    "Verify the service account key file is valid",
]
