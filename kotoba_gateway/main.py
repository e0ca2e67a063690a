import asyncio
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import partial

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings, load_gateway_config
from .errors import GatewayOperationError, classify_error, error_response
from .exceptions import KotobaGatewayError
from .gateway.router import router as vertexai_router
from .gateway.service import RequestGateway
from .logging_config import configure_logging
from .middleware import AccessLogMiddleware, RateLimitMiddleware, SecurityHeadersMiddleware
from .ratelimit import RateLimitConfig, RateLimiter
from .vertex.client import create_vertex_client
from .vertex.manager import ConnectionManager


logger = structlog.get_logger("main")

STARTED_AT = time.monotonic()


async def warm_up_connection(manager: ConnectionManager) -> None:
    """Connect to Vertex AI at startup.

    A failure here leaves the manager in the failed state; it is reported
    by status() and retried on the next request.
    """
    try:
        await manager.ensure_ready()
        logger.info(
            "vertex_ai_connected",
            project=manager.config.project_id,
            location=manager.config.location,
        )
    except KotobaGatewayError as e:
        logger.error(
            "vertex_ai_startup_failed",
            error=e.message,
            code=e.code,
            hint="Run the setup script and check the service account configuration",
        )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL, "json" if settings.is_production else settings.LOG_FORMAT)

        # Shared HTTP client for connection pooling to Vertex AI
        app.state.http_client = httpx.AsyncClient(timeout=settings.VERTEX_AI_TIMEOUT_SECONDS)

        config = load_gateway_config(settings)
        manager = ConnectionManager(
            config,
            client_factory=partial(create_vertex_client, http_client=app.state.http_client),
        )
        app.state.connection_manager = manager
        app.state.request_gateway = RequestGateway(manager)

        logger.info(
            "server_starting",
            app=settings.APP_NAME,
            environment=settings.ENVIRONMENT,
            cors_origin=settings.FRONTEND_URL,
        )

        warm_up = None
        if settings.VERTEX_AI_CONNECT_ON_STARTUP:
            warm_up = asyncio.create_task(warm_up_connection(manager))

        yield

        # Shutdown: stop the warm-up and any handshake before closing the HTTP client
        if warm_up is not None and not warm_up.done():
            warm_up.cancel()
        await manager.close()
        await app.state.http_client.aclose()
        logger.info("server_stopped")

    app = FastAPI(
        title=settings.APP_NAME,
        lifespan=lifespan,
        debug=settings.DEBUG,
    )

    rate_limiter = RateLimiter(
        RateLimitConfig.from_window_ms(
            max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
            window_ms=settings.RATE_LIMIT_WINDOW_MS,
        )
    )
    app.state.rate_limiter = rate_limiter

    # Last added runs first: security headers and CORS wrap everything
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    def details_for(exc: BaseException) -> str | None:
        return str(exc) if settings.DEBUG else None

    # Global exception handlers
    @app.exception_handler(GatewayOperationError)
    async def gateway_operation_handler(request: Request, exc: GatewayOperationError):
        return error_response(exc.info, details=details_for(exc.cause or exc))

    @app.exception_handler(KotobaGatewayError)
    async def gateway_error_handler(request: Request, exc: KotobaGatewayError):
        return error_response(classify_error(exc), details=details_for(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(classify_error(exc), details=details_for(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        message = f"Not Found - {request.url.path}" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "error": message,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_error", path=request.url.path)
        return error_response(classify_error(exc), details=details_for(exc))

    @app.get("/health")
    async def health_check(request: Request):
        status = request.app.state.connection_manager.status()
        return {
            "status": "OK",
            "services": {
                "server": "running",
                "vertexAI": "ready" if status.initialized else "not initialized",
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - STARTED_AT, 3),
            "environment": settings.ENVIRONMENT,
            "vertexAI": status.model_dump(mode="json", by_alias=True),
        }

    # Include routers
    app.include_router(vertexai_router)

    return app


app = create_app()
