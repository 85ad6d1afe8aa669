"""
Prometheus metrics for docvault
"""

import time
from contextlib import contextmanager
from typing import Iterator

from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import generate_latest

# Create a custom registry
metrics_registry = CollectorRegistry()

# Request metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
    registry=metrics_registry
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=(.005, .01, .025, .05, .075, .1, .25, .5, .75, 1.0, 2.5, 5.0, 7.5, 10.0),
    registry=metrics_registry
)

# Error metrics
errors_total = Counter(
    "errors_total",
    "Total errors",
    ["error_type", "endpoint"],
    registry=metrics_registry
)

# Access control metrics
access_decisions_total = Counter(
    "access_decisions_total",
    "Document access decisions",
    ["decision", "rule"],
    registry=metrics_registry
)

# Download token metrics
download_tokens_total = Counter(
    "download_tokens_total",
    "Download token operations",
    ["outcome"],
    registry=metrics_registry
)

download_tokens_removed_total = Counter(
    "download_tokens_removed_total",
    "Expired download tokens removed by cleanup",
    registry=metrics_registry
)

# Search metrics
search_requests_total = Counter(
    "search_requests_total",
    "Document searches",
    ["outcome"],
    registry=metrics_registry
)

search_duration_seconds = Histogram(
    "search_duration_seconds",
    "Document search time",
    buckets=(.001, .005, .01, .025, .05, .1, .25, .5, 1.0, 2.5),
    registry=metrics_registry
)


def record_request(method: str, endpoint: str, status: int, duration: float) -> None:
    """Record one finished HTTP request"""
    http_requests_total.labels(method=method, endpoint=endpoint, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)


@contextmanager
def track_search() -> Iterator[None]:
    """Time a search, including ones that raise"""
    start_time = time.time()
    try:
        yield
    finally:
        search_duration_seconds.observe(time.time() - start_time)


def get_metrics() -> bytes:
    """Generate Prometheus metrics exposition format"""
    return generate_latest(metrics_registry)
