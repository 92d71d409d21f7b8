"""Tests for metrics collection."""

import json

from prepai.metrics import MetricsCollector


class TestMetricsCollector:
    """Test counters, stats and the event log."""

    def test_counters(self):
        metrics = MetricsCollector(enable_logging=False)

        metrics.record_attempt("r1", 1, 3)
        metrics.record_error("r1", "UPSTREAM_SERVER_ERROR", "boom", attempt=1)
        metrics.record_retry("r1", 1, 3.2, "UPSTREAM_SERVER_ERROR")
        metrics.record_attempt("r1", 2, 3)
        metrics.record_success("r1", 2, 120)
        metrics.record_fallback("r2", "QUOTA_EXCEEDED")
        metrics.record_cache_hit("r3", "questions")

        counters = metrics.get_stats()["counters"]
        assert counters["attempts_total"] == 2
        assert counters["errors_total"] == 1
        assert counters["failures_by_code_UPSTREAM_SERVER_ERROR"] == 1
        assert counters["retries_total"] == 1
        assert counters["successes_total"] == 1
        assert counters["fallbacks_total"] == 1
        assert counters["cache_hits_total"] == 1

    def test_latency_and_attempt_stats(self):
        metrics = MetricsCollector(enable_logging=False)
        metrics.record_success("a", 1, 100)
        metrics.record_success("b", 3, 300)

        stats = metrics.get_stats()

        assert stats["latency"]["avg_ms"] == 200
        assert stats["latency"]["p50_ms"] == 200
        assert stats["attempts"]["max"] == 3
        assert stats["total_events"] == 2

    def test_empty_stats(self):
        stats = MetricsCollector(enable_logging=False).get_stats()
        assert stats["counters"] == {}
        assert stats["latency"]["p95_ms"] == 0

    def test_recent_events_bounded(self):
        metrics = MetricsCollector(enable_logging=False, max_events=3)
        for i in range(5):
            metrics.record_attempt(f"r{i}", 1, 1)

        events = metrics.recent_events()

        assert [e.request_id for e in events] == ["r2", "r3", "r4"]
        assert events[0].event_type == "attempt"

    def test_metrics_file(self, tmp_path):
        """Test JSONL persistence of events."""
        path = tmp_path / "metrics.jsonl"
        metrics = MetricsCollector(metrics_file=path, enable_logging=False)

        metrics.record_fallback("r1", "RATE_LIMITED")

        lines = path.read_text().splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["event_type"] == "fallback"
        assert event["data"] == {"reason": "RATE_LIMITED"}

    def test_reset(self):
        metrics = MetricsCollector(enable_logging=False)
        metrics.record_attempt("r", 1, 1)
        metrics.reset()
        assert metrics.get_stats()["total_events"] == 0
