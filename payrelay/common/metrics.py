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
upstream_requests_total = Counter(
    "upstream_requests_total",
    "Calls made to the payment processor",
    ["operation", "outcome"],
)
upstream_latency_seconds = Histogram(
    "upstream_latency_seconds",
    "Payment processor call latency seconds",
    ["operation"],
)
receipts_dispatched_total = Counter(
    "receipts_dispatched_total",
    "Receipt dispatches by outcome",
    ["sender", "outcome"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
