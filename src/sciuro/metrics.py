"""Prometheus metrics for the alert syncer and node reconciler.

Metrics are registered on a registry passed in by the caller so tests can
use a fresh CollectorRegistry per case. The daemon uses the process-wide
default registry.
"""

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

FETCH_DURATION_BUCKETS = [0.5, 1, 2, 3, 4, 5, 10, 15, 30, 60, 120]


class SyncMetrics:
    """Metrics recorded by AlertCache.refresh()."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.num_cached = Gauge(
            "num_cached",
            "Number of alerts last cached",
            subsystem="sync",
            registry=registry,
        )
        self.get_duration = Histogram(
            "get_duration",
            "Time to get alerts",
            subsystem="sync",
            buckets=FETCH_DURATION_BUCKETS,
            registry=registry,
        )
        self.get_failures = Counter(
            "get_failures",
            "Count of alerts get failures",
            subsystem="sync",
            registry=registry,
        )

    def set_cached(self, count: int) -> None:
        """Set number of cached alerts."""
        self.num_cached.set(count)

    def record_failure(self) -> None:
        """Record a failed or partial fetch."""
        self.get_failures.inc()


class ReconcileMetrics:
    """Metrics recorded by ConditionReconciler."""

    def __init__(self, registry: CollectorRegistry = REGISTRY) -> None:
        self.update_status = Counter(
            "update_status",
            "Count of reconciler status changes",
            ["old_status", "new_status"],
            subsystem="reconcile",
            registry=registry,
        )

    def record_transition(self, old_status: str, new_status: str) -> None:
        """
        Record a condition status transition.

        An empty string stands for a condition that did not exist before
        (old_status) or no longer exists (new_status).
        """
        self.update_status.labels(old_status=old_status, new_status=new_status).inc()
