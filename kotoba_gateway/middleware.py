"""HTTP middleware: rate limiting, security headers and access logging."""

import time
from typing import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from kotoba_gateway.errors import classify_error, error_response
from kotoba_gateway.ratelimit import RateLimitExceededError, RateLimiter, RateLimitResult


access_logger = structlog.get_logger("access")

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "X-DNS-Prefetch-Control": "off",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-Permitted-Cross-Domain-Policies": "none",
}


def add_rate_limit_headers(response: Response, result: RateLimitResult) -> None:
    """Add rate limit headers to response.

    Args:
        response: Response to add headers to.
        result: Rate limit check result.
    """
    response.headers["RateLimit-Limit"] = str(result.limit)
    response.headers["RateLimit-Remaining"] = str(result.remaining)
    response.headers["RateLimit-Reset"] = str(result.reset_after)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies per-client rate limiting to every path under a prefix."""

    def __init__(self, app, limiter: RateLimiter, path_prefix: str = "/api/"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: Callable):
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        result = self.limiter.check(client_key(request))
        if not result.allowed:
            exc = RateLimitExceededError(limit=result.limit, retry_after=result.retry_after)
            access_logger.warning("rate_limited", client=client_key(request), path=request.url.path)
            response = error_response(
                classify_error(exc),
                headers={"Retry-After": str(int(exc.retry_after) + 1)},
            )
        else:
            response = await call_next(request)

        add_rate_limit_headers(response, result)
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Sets a fixed set of hardening headers on every response."""

    async def dispatch(self, request: Request, call_next: Callable):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Logs one structured event per request."""

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        response = await call_next(request)
        access_logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            client=client_key(request),
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return response
