# domain_agent/middleware.py
"""
Request/response logging, request tracing and security headers.
"""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .logging_config import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 2.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and its outcome, tags it with a request id and
    reports the processing time in X-Request-ID / X-Process-Time.
    """

    # Paths to exclude from logging (health checks, docs)
    EXCLUDED_PATHS = ["/health", "/docs", "/openapi.json", "/redoc"]

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()

        should_log = not any(
            request.url.path.startswith(path) for path in self.EXCLUDED_PATHS
        )

        if should_log:
            logger.info(
                f"Incoming request: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "extra_data": {
                        "method": request.method,
                        "path": request.url.path,
                        "query_params": dict(request.query_params),
                        "client_host": request.client.host if request.client else None,
                        "user_agent": request.headers.get("user-agent"),
                    }
                }
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            # Log and let it propagate to the exception handlers
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "user_id": getattr(request.state, "user_id", None),
                    "extra_data": {
                        "method": request.method,
                        "path": request.url.path,
                        "process_time_ms": int((time.time() - start_time) * 1000),
                        "exception": str(exc)
                    }
                },
                exc_info=True
            )
            raise

        process_time = time.time() - start_time
        process_time_ms = int(process_time * 1000)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time_ms)

        # Set by the auth dependency once the bearer token is resolved
        user_id = getattr(request.state, "user_id", None)

        if should_log:
            if response.status_code >= 500:
                log_level = logger.error
            elif response.status_code >= 400:
                log_level = logger.warning
            else:
                log_level = logger.info

            log_level(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "extra_data": {
                        "method": request.method,
                        "path": request.url.path,
                        "status_code": response.status_code,
                        "process_time_ms": process_time_ms,
                    }
                }
            )

        if process_time > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "extra_data": {
                        "process_time_ms": process_time_ms,
                        "threshold_exceeded": True
                    }
                }
            )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


def register_middleware(app):
    """
    Register all middleware with the FastAPI app.
    Each add_middleware call wraps the previous ones, so the last added is outermost.
    """
    app.add_middleware(RequestLoggingMiddleware)

    # Security headers (outermost)
    app.add_middleware(SecurityHeadersMiddleware)

    logger.info("Middleware registered successfully")
