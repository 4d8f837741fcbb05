"""In-process observability: per-operation latency and policy rejection counts."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter

logger = logging.getLogger(__name__)


@dataclass
class OperationStats:
    """Aggregated latency for one ledger or boundary operation."""

    count: int = 0
    error_count: int = 0
    total_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0

    def add(self, duration_ms: float, ok: bool) -> None:
        self.count += 1
        if not ok:
            self.error_count += 1
        self.total_ms += duration_ms
        if self.count == 1:
            self.min_ms = self.max_ms = duration_ms
        else:
            self.min_ms = min(self.min_ms, duration_ms)
            self.max_ms = max(self.max_ms, duration_ms)

    def as_dict(self) -> dict[str, float | int]:
        return {
            "count": self.count,
            "error_count": self.error_count,
            "total_ms": round(self.total_ms, 3),
            "avg_ms": round(self.total_ms / self.count if self.count else 0.0, 3),
            "min_ms": round(self.min_ms, 3),
            "max_ms": round(self.max_ms, 3),
        }


_lock = Lock()
_operations: dict[str, OperationStats] = {}
_rejections: Counter[str] = Counter()


def record_latency(*, operation: str, duration_ms: float, ok: bool = True) -> None:
    """Record one latency sample for *operation*."""
    normalized = max(float(duration_ms), 0.0)
    with _lock:
        _operations.setdefault(operation, OperationStats()).add(normalized, ok)
    logger.debug(
        "latency operation=%s duration_ms=%.3f ok=%s", operation, normalized, ok
    )


@contextmanager
def timed(operation: str) -> Iterator[None]:
    """Record the wall time of the enclosed block; exceptions count as errors."""
    start = perf_counter()
    ok = False
    try:
        yield
        ok = True
    finally:
        record_latency(
            operation=operation,
            duration_ms=(perf_counter() - start) * 1000,
            ok=ok,
        )


def record_rejection(reason: str) -> None:
    """Count one append rejected by the policy guard."""
    with _lock:
        _rejections[reason] += 1


def latency_metrics_snapshot() -> dict[str, dict[str, float | int]]:
    with _lock:
        return {name: stats.as_dict() for name, stats in sorted(_operations.items())}


def rejection_counts_snapshot() -> dict[str, int]:
    with _lock:
        return dict(sorted(_rejections.items()))


def reset_metrics() -> None:
    """Clear all aggregates (test helper)."""
    with _lock:
        _operations.clear()
        _rejections.clear()
