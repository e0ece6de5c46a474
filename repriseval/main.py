"""
FastAPI application entry point.

Configures logging, middleware, exception handlers and routes.
"""
import logging
import sys

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from repriseval import __version__
from repriseval.api.routes import analysis
from repriseval.config import get_settings
from repriseval.exceptions import InvalidContextError, RepriseValError
from repriseval.middleware.logging import (
    CorrelationIdMiddleware,
    RequestLoggingMiddleware,
    add_correlation_id_processor,
)
from repriseval.reference.alert_rules import ALERT_RULES_VERSION
from repriseval.reference.sector_benchmarks import BENCHMARK_TABLE_VERSION

settings = get_settings()

logging.basicConfig(format="%(message)s", stream=sys.stdout, level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        add_correlation_id_processor,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if settings.log_json else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="""
## Deterministic Financial Resolution & Validation Engine

Turns per-year extraction records from business-sale documents into
canonical financial indicators, ratios, sector comparisons, alerts,
coherence checks and a data-quality score. The same input always yields
the same output.
    """,
    version=__version__,
    debug=settings.debug,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "Analysis", "description": "Full analysis pass and reference tables"},
        {"name": "Health", "description": "Service health"},
    ],
)

# Order matters: correlation ID first
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(analysis.router, prefix="/api/v1", tags=["Analysis"])


# Global Exception Handlers

@app.exception_handler(RepriseValError)
async def repriseval_exception_handler(request: Request, exc: RepriseValError):
    """Handle all RepriseVal custom exceptions."""
    logger.error(
        "repriseval_error",
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render request body validation failures as a malformed analysis context."""
    errors = [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    error = InvalidContextError(errors)
    logger.warning("invalid_request", path=str(request.url.path), errors=len(errors))
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions with consistent format."""
    logger.error(
        "unhandled_error",
        error_type=type(exc).__name__,
        message=str(exc),
        path=str(request.url.path),
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "RPV-999",
            "message": "An unexpected error occurred. Please try again.",
            "details": {"error_type": type(exc).__name__} if settings.debug else {},
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "version": __version__,
        "benchmark_table_version": BENCHMARK_TABLE_VERSION,
        "alert_rules_version": ALERT_RULES_VERSION,
    }
