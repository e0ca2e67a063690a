"""Request gateway: the single entry point for templated model operations."""

import time
from datetime import datetime, timezone

import structlog

from kotoba_gateway.config import GenerationParams
from kotoba_gateway.errors import ErrorKind, GatewayOperationError, classify_error
from kotoba_gateway.exceptions import OperationValidationError
from kotoba_gateway.vertex.manager import ConnectionManager

from .operations import get_operation
from .schemas import CONFIDENCE, OperationRequest, OperationResult


logger = structlog.get_logger("gateway")


class RequestGateway:
    """Validates operation requests and runs them against the shared model.

    No retries happen here; a single upstream failure surfaces immediately.
    """

    def __init__(self, manager: ConnectionManager, params: GenerationParams | None = None):
        """Initialize the gateway.

        Args:
            manager: Owner of the shared model connection.
            params: Generation parameters; the manager's configured ones if omitted.
        """
        self.manager = manager
        self.params = params or manager.config.generation_params()

    def _fail(
        self,
        request: OperationRequest,
        exc: BaseException,
        fallback: ErrorKind,
        started: float,
    ) -> GatewayOperationError:
        info = classify_error(exc, fallback=fallback)
        logger.warning(
            "operation_failed",
            operation=request.operation,
            kind=info.kind.value,
            error_code=info.code,
            error=info.message,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return GatewayOperationError(info, cause=exc)

    async def invoke(self, request: OperationRequest) -> OperationResult:
        """Run one templated operation.

        Steps:
        1. Validate the operation's required fields
        2. Ensure the model connection is ready
        3. Compose the prompt
        4. Call the model with the configured generation parameters
        5. Return the trimmed text with the fixed confidence value

        Args:
            request: Operation name and fields.

        Returns:
            OperationResult with the model text and echoed fields.

        Raises:
            GatewayOperationError: Carrying the classified failure of whichever
                step failed.
        """
        started = time.perf_counter()

        try:
            operation = get_operation(request.operation)
            fields = operation.validate(request.fields)
        except OperationValidationError as e:
            raise self._fail(request, e, ErrorKind.validation, started) from e

        try:
            client = await self.manager.ensure_ready()
        except Exception as e:
            raise self._fail(request, e, ErrorKind.service_unavailable, started) from e

        prompt = operation.build_prompt(fields)

        try:
            text = await client.generate(prompt, self.params)
        except Exception as e:
            raise self._fail(request, e, ErrorKind.upstream, started) from e

        logger.info(
            "operation_completed",
            operation=operation.name,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return OperationResult(
            operation=operation.name,
            result_key=operation.result_key,
            text=text.strip(),
            echo=operation.echo_fields(fields),
            confidence=CONFIDENCE,
            timestamp=datetime.now(timezone.utc),
        )
