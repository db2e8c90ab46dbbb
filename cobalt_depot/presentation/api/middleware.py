"""
HTTP middleware components for request/response processing.

This module provides middleware for error handling, request tracing and
access logging, and security headers.
"""

import logging
import time
import uuid
from typing import Any, Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ...infrastructure.config.models import SecurityConfig

logger = logging.getLogger(__name__)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Middleware turning unhandled exceptions into a JSON 500."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        """Process request and handle errors."""
        try:
            response = await call_next(request)
            return response

        except Exception as e:
            logger.exception(
                f"Unhandled error in {request.method} {request.url.path}: {e}")

            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_error",
                    "message": str(e) if request.app.debug else "An unexpected error occurred",
                    "request_id": getattr(request.state, "request_id", None)
                }
            )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware tagging each request with an id and recording its duration."""

    def __init__(self, app: Any, access_log: bool = False) -> None:
        super().__init__(app)
        self.access_log = access_log
        self.metrics = {
            "request_count": 0,
            "total_time": 0.0,
            "avg_response_time": 0.0,
        }

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        start_time = time.time()

        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)

        # Time to first byte for streamed downloads
        duration = time.time() - start_time

        self.metrics["request_count"] += 1
        self.metrics["total_time"] += duration
        self.metrics["avg_response_time"] = (
            self.metrics["total_time"] / self.metrics["request_count"]
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        if self.access_log and hasattr(request.app.state, "container"):
            from ...infrastructure.logging.setup import LoggingManager
            logging_manager = request.app.state.container.try_resolve(LoggingManager)
            if logging_manager:
                logging_manager.log_access(
                    f"{request.method} {request.url.path} {response.status_code}",
                    duration=round(duration, 4),
                    status_code=response.status_code,
                    request_id=request_id
                )

        return response


class SecurityMiddleware(BaseHTTPMiddleware):
    """Middleware adding security headers to every response."""

    def __init__(self, app: Any, config: SecurityConfig) -> None:
        super().__init__(app)
        self.config = config

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        response = await call_next(request)

        if self.config.security_headers:
            self._add_security_headers(response)

        return response

    def _add_security_headers(self, response: Response) -> None:
        """Add security headers to response."""
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
