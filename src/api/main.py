"""
Main FastAPI application for the Strategy Negotiation & Explainability Engine.

This module sets up the FastAPI app with all routers, middleware,
and exception handlers.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from src.config import get_settings, setup_logging
from src.models.responses import ErrorCode, ErrorResponse, RecoveryHints
from src.services.strategy_selector import InsufficientStrategiesError
from src.utils.tracing import (
    CORRELATION_ID_HEADER,
    CorrelationIdMiddleware,
    generate_correlation_id,
    get_correlation_id,
)

from .explain import router as explain_router
from .health import router as health_router
from .metrics import router as metrics_router
from .negotiation import router as negotiation_router

# Setup logging
logger = setup_logging()
settings = get_settings()


def _request_id(request: Request) -> str:
    return (
        getattr(request.state, "correlation_id", None)
        or request.headers.get(CORRELATION_ID_HEADER)
        or get_correlation_id()
        or generate_correlation_id()
    )


def _error_response(status_code: int, error: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error.model_dump(exclude_none=True),
        headers={CORRELATION_ID_HEADER: error.request_id},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    config_errors = settings.validate_production_config()
    if config_errors:
        for error in config_errors:
            logger.error("invalid_production_config", extra={"error": error})
        raise RuntimeError(f"Invalid production configuration: {config_errors}")

    logger.info(
        "application_startup",
        extra={
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
        },
    )

    yield

    logger.info("application_shutdown")


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    description=settings.DESCRIPTION,
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Enable gzip compression for larger JSON responses
app.add_middleware(
    GZipMiddleware,
    minimum_size=1000,
    compresslevel=6,
)

# Correlation id propagation (X-Correlation-Id on every response)
app.add_middleware(CorrelationIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[CORRELATION_ID_HEADER],
    max_age=600,
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next: Callable) -> Response:
    """
    Log all incoming requests and responses with Prometheus metrics.
    """
    from .metrics import (
        active_requests,
        http_errors_total,
        http_request_duration_seconds,
        http_requests_total,
    )

    start_time = time.time()
    endpoint = request.url.path
    active_requests.inc()

    logger.info(
        "request_started",
        extra={
            "method": request.method,
            "path": endpoint,
            "client": request.client.host if request.client else "unknown",
        },
    )

    try:
        response = await call_next(request)
        duration_seconds = time.time() - start_time

        http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).inc()
        http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration_seconds)

        if response.status_code >= 400:
            http_errors_total.labels(
                method=request.method,
                endpoint=endpoint,
                error_code=response.status_code,
            ).inc()

        logger.info(
            "request_completed",
            extra={
                "method": request.method,
                "path": endpoint,
                "status_code": response.status_code,
                "duration_ms": round(duration_seconds * 1000, 2),
            },
        )

        return response

    except Exception as exc:
        http_errors_total.labels(
            method=request.method,
            endpoint=endpoint,
            error_code="500",
        ).inc()

        logger.error(
            "request_failed",
            extra={
                "method": request.method,
                "path": endpoint,
                "error": str(exc),
                "duration_ms": round((time.time() - start_time) * 1000, 2),
            },
            exc_info=True,
        )

        raise

    finally:
        active_requests.dec()


# Exception handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException with the standard error body."""
    if exc.status_code == 400:
        code = ErrorCode.INVALID_INPUT.value
        reason = "bad_request"
    elif exc.status_code == 404:
        code = ErrorCode.NOT_FOUND.value
        reason = "not_found"
    elif exc.status_code == 503:
        code = ErrorCode.SERVICE_UNAVAILABLE.value
        reason = "service_unavailable"
    elif exc.status_code == 504:
        code = ErrorCode.TIMEOUT.value
        reason = "timeout"
    else:
        code = ErrorCode.VALIDATION_ERROR.value
        reason = "http_error"

    error_response = ErrorResponse(
        code=code,
        message=str(exc.detail),
        reason=reason,
        recovery=RecoveryHints(
            hints=["Check your request parameters", "Refer to API documentation"],
            suggestion="Fix the input and retry",
        ),
        retryable=exc.status_code in [503, 504],
        request_id=_request_id(request),
    )

    return _error_response(exc.status_code, error_response)


@app.exception_handler(InsufficientStrategiesError)
async def insufficient_strategies_handler(
    request: Request, exc: InsufficientStrategiesError
) -> JSONResponse:
    """Fewer than three distinct candidates is a caller error."""
    error_response = ErrorResponse(
        code=ErrorCode.INSUFFICIENT_STRATEGIES.value,
        message=str(exc),
        reason="bad_request",
        recovery=RecoveryHints(
            hints=[
                f"Supply at least {exc.required} strategies with distinct strategyId values",
                "Duplicate strategyId values are collapsed before ranking",
            ],
            suggestion="Request more candidates from strategy generation and retry",
        ),
        retryable=False,
        request_id=_request_id(request),
    )

    return _error_response(400, error_response)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle schema validation errors as 400 with the standard error body."""
    errors = exc.errors()
    validation_failures = [
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
        for err in errors
    ]

    hints = []
    if any("missing" in err["type"] for err in errors):
        hints.append("Ensure all required fields are provided")
    if any(err["type"].endswith("_type") or "parsing" in err["type"] for err in errors):
        hints.append("Check data types match the expected schema")
    if any(err["type"] in ("value_error", "greater_than_equal", "less_than_equal", "too_short") for err in errors):
        hints.append("Verify values are within valid ranges")
    if not hints:
        hints.append("Check the API documentation for correct request format")

    error_response = ErrorResponse(
        code=ErrorCode.VALIDATION_ERROR.value,
        message="Request validation failed",
        reason="invalid_schema",
        recovery=RecoveryHints(
            hints=hints,
            suggestion="Fix validation errors and retry",
            example="See validation_failures field for specific issues",
        ),
        validation_failures=validation_failures,
        retryable=False,
        request_id=_request_id(request),
    )

    return _error_response(400, error_response)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions with the standard error body."""
    request_id = _request_id(request)

    logger.error(
        "unhandled_exception",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
            "request_id": request_id,
        },
        exc_info=True,
    )

    error_response = ErrorResponse(
        code=ErrorCode.COMPUTATION_ERROR.value,
        message="An unexpected error occurred during computation",
        reason="internal_error",
        recovery=RecoveryHints(
            hints=[
                "Check server logs for details",
                "Contact support if the error persists",
            ],
            suggestion="Retry with the same input or contact support",
        ),
        retryable=True,
        request_id=request_id,
    )

    return _error_response(500, error_response)


# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Monitoring"])
app.include_router(
    negotiation_router,
    prefix=f"{settings.API_V1_PREFIX}/negotiation",
    tags=["Negotiation"],
)
app.include_router(
    explain_router,
    prefix=f"{settings.API_V1_PREFIX}/explain",
    tags=["Explainability"],
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
    )
