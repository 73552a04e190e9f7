"""
Prometheus metrics endpoint and instrumentation.

Exposes key application metrics for monitoring:
- Request counts and latencies
- Error rates
- Service health
- Business metrics (see src.utils.business_metrics)
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import APIRouter, Response

router = APIRouter()

# Request metrics
http_requests_total = Counter(
    "negotiation_engine_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

http_request_duration_seconds = Histogram(
    "negotiation_engine_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0),
)

# Error metrics
http_errors_total = Counter(
    "negotiation_engine_http_errors_total",
    "Total HTTP errors",
    ["method", "endpoint", "error_code"],
)

# Service health metrics
service_up = Gauge(
    "negotiation_engine_service_up",
    "Service is up (1) or down (0)",
)

active_requests = Gauge(
    "negotiation_engine_active_requests",
    "Number of currently active requests",
)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """
    Expose Prometheus metrics.

    Returns metrics in Prometheus text format for scraping.
    This endpoint is not included in the OpenAPI schema.
    """
    service_up.set(1)

    metrics_output = generate_latest()
    return Response(
        content=metrics_output,
        media_type=CONTENT_TYPE_LATEST,
    )
