"""
Prometheus metrics for the SMS command API.

This module provides:
- HTTP request counter (method, path, status)
- Request latency histogram (method, path)
- SMS dispatch outcome counter (result)

Metrics are stored in-memory using prometheus-client.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST


# =============================================================================
# Metric Definitions
# =============================================================================

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"]
)

# result: sent, failed, error
sms_dispatch_total = Counter(
    "sms_dispatch_total",
    "SMS dispatch outcomes per recipient",
    labelnames=["result"]
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"]
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Record an HTTP request in metrics.

    Args:
        method: HTTP method (GET, POST, etc.)
        path: Route template when known (e.g. /api/models/{model_id}), else raw path
        status: HTTP status code
        latency_seconds: Request processing time in seconds
    """
    # path is the route template (e.g. /api/models/{model_id}) to avoid
    # high-cardinality labels
    http_requests_total.labels(
        method=method,
        path=path,
        status=str(status)
    ).inc()

    request_latency_seconds.labels(
        method=method,
        path=path
    ).observe(latency_seconds)


def record_sms_outcome(result: str) -> None:
    """
    Record the outcome of one recipient in a send request.

    Args:
        result: "sent", "failed" (dispatcher reported failure) or
            "error" (dispatch or persistence raised)
    """
    sms_dispatch_total.labels(result=result).inc()


def get_metrics() -> bytes:
    """Generate Prometheus exposition format metrics."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
