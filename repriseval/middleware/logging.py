"""
Logging middleware and utilities.

Provides correlation ID tracking and request/response logging with timing.
"""
import time
import uuid
from contextvars import ContextVar
from typing import Any, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for correlation ID
correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


def get_correlation_id() -> str:
    """Get the current request's correlation ID."""
    return correlation_id.get()


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Middleware that adds a correlation ID to each request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        token = correlation_id.set(request_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id.reset(token)

        response.headers[CORRELATION_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware that logs all requests with timing information."""

    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

    # Analyses slower than this are logged as slow
    SLOW_REQUEST_MS = 1000

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        request_info = {
            "method": request.method,
            "path": request.url.path,
            "query": str(request.query_params) if request.query_params else None,
            "client_ip": request.client.host if request.client else None,
        }
        logger.info("request_started", **request_info)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                **request_info,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            raise

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.info(
            "request_completed",
            **request_info,
            status_code=response.status_code,
            duration_ms=duration_ms,
        )
        if duration_ms > self.SLOW_REQUEST_MS:
            logger.warning("slow_request", **request_info, duration_ms=duration_ms)

        return response


def add_correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict
) -> dict:
    """Structlog processor that adds the correlation ID to log entries made during a request."""
    request_id = get_correlation_id()
    if request_id:
        event_dict["correlation_id"] = request_id
    return event_dict
