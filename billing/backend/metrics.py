"""Prometheus metrics for the billing client.

Exposes key metrics for monitoring:
- Backend request counts by method, endpoint template and status
- Backend request duration histograms
- Mutation outcomes issued through the view-sync controller

Based on Prometheus best practices:
https://prometheus.io/docs/practices/naming/
"""

from prometheus_client import Counter, Histogram, generate_latest
from prometheus_client.openmetrics.exposition import CONTENT_TYPE_LATEST

# Backend request metrics
backend_requests_total = Counter(
    "billing_backend_requests_total",
    "Total requests issued to the billing backend",
    ["method", "endpoint", "status"],  # status: HTTP code or 'error'
)

backend_request_duration_seconds = Histogram(
    "billing_backend_request_duration_seconds",
    "Billing backend request duration in seconds",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0),
)

# Mutation metrics
mutations_total = Counter(
    "billing_mutations_total",
    "Total mutations issued through the view-sync controller",
    ["kind", "action", "outcome"],  # outcome: success, failed, cancelled
)


def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics in text format.

    Returns:
        Tuple of (metrics bytes, content type)
    """
    return generate_latest(), CONTENT_TYPE_LATEST
