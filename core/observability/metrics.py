"""
Metrics Collection for the Self-Service Portal

Collects and exposes in-process metrics for:
- ERP calls (per entity set and HTTP method, by status class)
- Operation outcomes (successes and failures by error kind)
- Concurrency conflicts (stale ETag writes)
- ERP call latency (average, p95)

Metrics live in memory for the life of the process and are exposed through
the health endpoint.
"""

import statistics
from collections import defaultdict, deque
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Deque, Dict, Optional, Sequence


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class CallMetrics:
    """Counters for HTTP calls made to the ERP."""
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    transport_errors: int = 0

    # By "METHOD EntitySet"
    by_endpoint: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: defaultdict(lambda: {"total": 0, "2xx": 0, "4xx": 0, "5xx": 0})
    )


@dataclass
class OutcomeMetrics:
    """Counters for portal operation outcomes."""
    succeeded: int = 0
    failed: int = 0
    conflicts: int = 0

    # By error kind
    by_kind: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


class TimingMetrics:
    """Recent ERP call durations, overall and per entity set."""

    def __init__(self, max_samples: int = 1000):
        self.max_samples = max_samples
        self.overall: Deque[float] = deque(maxlen=max_samples)
        self.by_entity_set: Dict[str, Deque[float]] = {}

    def add_sample(self, duration_ms: float, entity_set: Optional[str] = None):
        self.overall.append(duration_ms)
        if entity_set:
            self.by_entity_set.setdefault(entity_set, deque(maxlen=self.max_samples)).append(duration_ms)

    def samples(self, entity_set: Optional[str] = None) -> Sequence[float]:
        if entity_set is None:
            return self.overall
        return self.by_entity_set.get(entity_set, ())

    def stats(self, entity_set: Optional[str] = None) -> Dict[str, float]:
        """Average and 95th percentile in milliseconds (zeros when empty)."""
        samples = sorted(self.samples(entity_set))
        if not samples:
            return {"average_ms": 0.0, "p95_ms": 0.0, "sample_count": 0}
        p95 = samples[min(int(len(samples) * 0.95), len(samples) - 1)]
        return {"average_ms": statistics.mean(samples), "p95_ms": p95, "sample_count": len(samples)}


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for ERP traffic.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_erp_call("PATCH", "Appraisals", 200, duration_ms=84.0)
        metrics.record_failure("CONFLICT")
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.calls = CallMetrics()
        self.outcomes = OutcomeMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the singleton so the next caller starts from zero."""
        with cls._lock:
            cls._instance = None

    # =========================================================================
    # ERP Call Metrics
    # =========================================================================

    def record_erp_call(self, method: str, entity_set: str, status: int, duration_ms: float = None):
        """Record one HTTP round trip to the ERP."""
        bucket = f"{status // 100}xx"
        key = f"{method} {entity_set}"
        with self._lock:
            self.calls.total += 1
            if 200 <= status < 300:
                self.calls.succeeded += 1
            else:
                self.calls.failed += 1
            counters = self.calls.by_endpoint[key]
            counters["total"] += 1
            if bucket in counters:
                counters[bucket] += 1

            if duration_ms is not None:
                self.timings.add_sample(duration_ms, entity_set)

    def record_transport_error(self, method: str, entity_set: str):
        """Record a call that never got an HTTP response."""
        with self._lock:
            self.calls.total += 1
            self.calls.failed += 1
            self.calls.transport_errors += 1
            self.calls.by_endpoint[f"{method} {entity_set}"]["total"] += 1

    # =========================================================================
    # Outcome Metrics
    # =========================================================================

    def record_success(self):
        """Record a successful portal operation."""
        with self._lock:
            self.outcomes.succeeded += 1

    def record_failure(self, kind: str):
        """Record a failed portal operation by error kind."""
        with self._lock:
            self.outcomes.failed += 1
            self.outcomes.by_kind[kind] += 1
            if kind == "CONFLICT":
                self.outcomes.conflicts += 1

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def get_timing_stats(self, entity_set: Optional[str] = None) -> Dict[str, float]:
        """Latency of ERP calls, optionally for one entity set."""
        with self._lock:
            return self.timings.stats(entity_set)

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "erp_calls": {
                    "total": self.calls.total,
                    "succeeded": self.calls.succeeded,
                    "failed": self.calls.failed,
                    "transport_errors": self.calls.transport_errors,
                    "by_endpoint": {k: dict(v) for k, v in self.calls.by_endpoint.items()},
                },
                "operations": {
                    "succeeded": self.outcomes.succeeded,
                    "failed": self.outcomes.failed,
                    "conflicts": self.outcomes.conflicts,
                    "by_kind": dict(self.outcomes.by_kind),
                },
                "timings": {
                    "overall": self.timings.stats(),
                    "by_entity_set": {name: self.timings.stats(name) for name in self.timings.by_entity_set},
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_erp_call(method: str, entity_set: str, status: int, duration_ms: float = None):
    """Record one HTTP round trip to the ERP."""
    get_metrics().record_erp_call(method, entity_set, status, duration_ms)


def record_transport_error(method: str, entity_set: str):
    """Record a call that failed below the HTTP layer."""
    get_metrics().record_transport_error(method, entity_set)


def record_operation_success():
    """Record a successful portal operation."""
    get_metrics().record_success()


def record_operation_failure(kind: str):
    """Record a failed portal operation."""
    get_metrics().record_failure(kind)
