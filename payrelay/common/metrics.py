"""Prometheus metric definitions for the relay."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
payment_verifications_total = Counter(
    "payment_verifications_total",
    "Verify-and-capture requests by outcome",
    ["service", "outcome"],
)
gateway_requests_total = Counter(
    "gateway_requests_total",
    "Outbound gateway calls by operation and result",
    ["service", "operation", "result"],
)
gateway_request_duration_seconds = Histogram(
    "gateway_request_duration_seconds",
    "Outbound gateway call duration seconds",
    ["service", "operation"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
