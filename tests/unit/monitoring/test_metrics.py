"""
Unit Tests for Prometheus Metrics
Tests for docvault/monitoring/metrics.py
"""

import pytest

from docvault.monitoring import get_metrics, metrics_registry, record_request, track_search


def sample(name, labels=None):
    return metrics_registry.get_sample_value(name, labels or {}) or 0.0


class TestMetrics:
    def test_record_request(self):
        labels = {"method": "GET", "endpoint": "/unit-test", "status": "200"}
        before = sample("http_requests_total", labels)

        record_request("GET", "/unit-test", 200, 0.01)

        assert sample("http_requests_total", labels) == before + 1

    def test_track_search_observes_on_error(self):
        before = sample("search_duration_seconds_count")

        with pytest.raises(RuntimeError):
            with track_search():
                raise RuntimeError("boom")

        assert sample("search_duration_seconds_count") == before + 1

    def test_exposition_format(self):
        output = get_metrics()
        assert isinstance(output, bytes)
        assert b"access_decisions_total" in output
