"""Unit tests for in-process latency and rejection metrics."""

from __future__ import annotations

import pytest

from auditmcp.observability import latency_metrics_snapshot
from auditmcp.observability import record_latency
from auditmcp.observability import record_rejection
from auditmcp.observability import rejection_counts_snapshot
from auditmcp.observability import reset_metrics
from auditmcp.observability import timed


class TestLatency:
    def test_aggregates_samples(self):
        record_latency(operation="query.find", duration_ms=10)
        record_latency(operation="query.find", duration_ms=30, ok=False)
        stats = latency_metrics_snapshot()["query.find"]
        assert stats["count"] == 2
        assert stats["error_count"] == 1
        assert stats["avg_ms"] == 20.0
        assert stats["min_ms"] == 10.0
        assert stats["max_ms"] == 30.0

    def test_negative_durations_clamped(self):
        record_latency(operation="x", duration_ms=-5)
        assert latency_metrics_snapshot()["x"]["max_ms"] == 0.0

    def test_timed_records_errors(self):
        with timed("ok.block"):
            pass
        with pytest.raises(RuntimeError):
            with timed("bad.block"):
                raise RuntimeError("boom")
        snapshot = latency_metrics_snapshot()
        assert snapshot["ok.block"]["error_count"] == 0
        assert snapshot["bad.block"]["error_count"] == 1


class TestRejections:
    def test_counts_by_reason(self):
        record_rejection("diff_tampering")
        record_rejection("diff_tampering")
        record_rejection("invalid_event")
        assert rejection_counts_snapshot() == {
            "diff_tampering": 2,
            "invalid_event": 1,
        }

    def test_reset(self):
        record_rejection("diff_tampering")
        record_latency(operation="x", duration_ms=1)
        reset_metrics()
        assert rejection_counts_snapshot() == {}
        assert latency_metrics_snapshot() == {}
