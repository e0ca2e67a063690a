"""Lifecycle management for the shared Vertex AI connection."""

import asyncio
from pathlib import Path
from typing import Callable

import structlog

from kotoba_gateway.config import GatewayConfig
from .client import ModelClient
from .exceptions import (
    ConfigurationError,
    InitializationError,
    ModelPermissionError,
    NotReadyError,
)
from .schemas import (
    PERMISSION_SUGGESTIONS,
    ConnectionState,
    PermissionReport,
    StatusSnapshot,
)


HANDSHAKE_PROMPT = 'Say "Hello from Vertex AI Gemini!" in one sentence.'
PERMISSION_PROMPT = "Test permissions"

ClientFactory = Callable[[GatewayConfig], ModelClient]

logger = structlog.get_logger("vertex.manager")

_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.uninitialized: frozenset({ConnectionState.initializing}),
    ConnectionState.initializing: frozenset({ConnectionState.ready, ConnectionState.failed}),
    ConnectionState.ready: frozenset(),
    ConnectionState.failed: frozenset({ConnectionState.initializing}),
}


class ConnectionManager:
    """Owns the single client handle to the remote model.

    The connection is established lazily by ensure_ready(). Concurrent
    callers share one in-flight handshake and all receive its outcome.
    A failed handshake is retried by the next ensure_ready() call.

    Attributes:
        config: Connection parameters.
    """

    def __init__(self, config: GatewayConfig, client_factory: ClientFactory):
        """Initialize the manager in the uninitialized state.

        Args:
            config: Connection parameters.
            client_factory: Builds a model client from the config.
        """
        self.config = config
        self._client_factory = client_factory
        self._state = ConnectionState.uninitialized
        self._client: ModelClient | None = None
        self._last_error: InitializationError | None = None
        self._inflight: asyncio.Task | None = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def last_error(self) -> InitializationError | None:
        return self._last_error

    @property
    def client(self) -> ModelClient:
        """The ready client handle.

        Raises:
            NotReadyError: If the connection is not ready.
        """
        if self._state is not ConnectionState.ready or self._client is None:
            raise NotReadyError()
        return self._client

    def _transition(self, target: ConnectionState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid connection state transition {self._state.value} -> {target.value}")
        logger.debug("connection_state_changed", previous=self._state.value, state=target.value)
        self._state = target

    async def ensure_ready(self) -> ModelClient:
        """Return the ready client, establishing the connection if needed.

        Returns:
            The shared model client.

        Raises:
            ConfigurationError: If the credentials path is unset or missing.
            InitializationError: If the handshake fails for any other reason.
        """
        if self._state is ConnectionState.ready:
            return self._client

        if self._inflight is None:
            self._transition(ConnectionState.initializing)
            self._inflight = asyncio.ensure_future(self._run_handshake())

        # Cancelling one waiter must not abort the shared handshake.
        return await asyncio.shield(self._inflight)

    async def _run_handshake(self) -> ModelClient:
        try:
            client = await self._handshake()
        except InitializationError as e:
            self._fail(e)
            raise
        except asyncio.CancelledError:
            self._fail(InitializationError("Vertex AI initialization was cancelled"))
            raise
        except Exception as e:
            error = InitializationError(f"Vertex AI initialization failed: {e}", cause=e)
            self._fail(error)
            raise error from e
        else:
            self._client = client
            self._last_error = None
            self._transition(ConnectionState.ready)
            logger.info("vertex_ai_ready", model=self.config.model_name)
            return client
        finally:
            self._inflight = None

    def _fail(self, error: InitializationError) -> None:
        self._client = None
        self._last_error = error
        self._transition(ConnectionState.failed)
        logger.error(
            "vertex_ai_initialization_failed",
            error=error.message,
            code=error.code,
            hint="Check your Google Cloud configuration",
        )

    async def _handshake(self) -> ModelClient:
        """Validate credentials, build the client and make one test call."""
        logger.info(
            "vertex_ai_initializing",
            project=self.config.project_id,
            location=self.config.location,
            model=self.config.model_name,
        )

        if not self.config.credentials_path:
            raise ConfigurationError("GOOGLE_APPLICATION_CREDENTIALS environment variable not set")

        full_path = Path(self.config.credentials_path).resolve()
        if not full_path.is_file():
            raise ConfigurationError(
                f"Service account file not found: {full_path}",
                credentials_path=str(full_path),
            )
        logger.info("vertex_ai_service_account", path=str(full_path))

        client = self._client_factory(self.config)
        text = await client.generate(HANDSHAKE_PROMPT)
        logger.info("vertex_ai_test_response", preview=text[:100])
        return client

    def status(self) -> StatusSnapshot:
        """Snapshot the current state without waiting on any handshake."""
        return StatusSnapshot(
            initialized=self._state is ConnectionState.ready,
            state=self._state,
            error=self._last_error.message if self._last_error else None,
            config=self.config.view(),
        )

    async def check_permissions(self) -> PermissionReport:
        """Verify the service account may use the model.

        Returns:
            PermissionReport; has_permissions is False with remediation
            hints when the call is denied.

        Raises:
            NotReadyError: If the connection is not ready.
            ModelCallError: If the diagnostic call fails for another reason.
        """
        client = self.client
        try:
            await client.generate(PERMISSION_PROMPT)
        except ModelPermissionError as e:
            logger.warning("vertex_ai_permission_denied", error=e.message)
            return PermissionReport(
                has_permissions=False,
                error=e.message,
                suggestions=list(PERMISSION_SUGGESTIONS),
            )
        return PermissionReport(has_permissions=True)

    async def close(self) -> None:
        """Cancel any in-flight handshake and wait for it to settle.

        Called at shutdown before the transport is closed. The connection
        is left failed, so a later ensure_ready() starts a new attempt.
        """
        task = self._inflight
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except InitializationError:
            # Finished failing before the cancellation landed
            pass

        # A task cancelled before it started never ran its own cleanup
        if self._state is ConnectionState.initializing:
            self._inflight = None
            self._fail(InitializationError("Vertex AI initialization was cancelled"))
