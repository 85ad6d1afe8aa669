"""
Monitoring module for application metrics
"""

from docvault.monitoring.metrics import (
    access_decisions_total,
    download_tokens_removed_total,
    download_tokens_total,
    errors_total,
    get_metrics,
    metrics_registry,
    record_request,
    search_requests_total,
    track_search,
)

__all__ = [
    "access_decisions_total",
    "download_tokens_removed_total",
    "download_tokens_total",
    "errors_total",
    "get_metrics",
    "metrics_registry",
    "record_request",
    "search_requests_total",
    "track_search",
]
