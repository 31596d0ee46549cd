"""
AlertCache: periodically fetched alert snapshot queried per node.

This module implements the alert syncer that:
- Refreshes alerts from an AlertSource on a jittered interval
- Keeps the latest result as an immutable CacheSnapshot
- Answers "which cached alerts apply to node X" with a NodeMatcher
- Records fetch metrics (cached count, fetch duration, failures)

Concurrency:
- refresh() calls are serialized with an asyncio.Lock, so only one fetch is
  in flight; each fetch is bounded by a timeout equal to the interval
- The snapshot is replaced as a whole under a threading.Lock that guards only
  the reference swap. query() copies the reference and evaluates matchers
  outside the lock, so concurrent readers never block each other and never
  observe a half-written snapshot.

Failure semantics:
- Non-partial failure: alerts cleared, last_error set, queries fail
- Partial failure: the succeeding subset is kept and served; the error is
  counted, logged and exposed as partial_error
"""

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sciuro.exceptions import (
    AlertFetchError,
    CacheNotReadyError,
    MatchEvaluationError,
)
from sciuro.match import NodeMatcherProtocol
from sciuro.metrics import SyncMetrics
from sciuro.sources import AlertSourceProtocol, FetchResult
from sciuro.types import AlertRecord, short_name

logger = logging.getLogger(__name__)

DEFAULT_JITTER = 0.2


@dataclass(frozen=True)
class CacheSnapshot:
    """
    Result of the most recent refresh.

    Attributes:
        alerts: Cached alerts (empty after a non-partial failure)
        retrieved_at: Time of the last fetch attempt, None before the first
        last_error: Error of the last fetch if it failed entirely
        partial_error: Error of the last fetch if it was partial
    """

    alerts: tuple[AlertRecord, ...] = ()
    retrieved_at: datetime | None = None
    last_error: Exception | None = None
    partial_error: Exception | None = None


@dataclass
class NodeAlerts:
    """
    Alerts matched to one node.

    Attributes:
        alerts: Matching alerts
        retrieved_at: When the underlying snapshot was fetched
        partial_error: Set when the snapshot came from a partial fetch
    """

    alerts: list[AlertRecord] = field(default_factory=list)
    retrieved_at: datetime | None = None
    partial_error: Exception | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertCache:
    """
    Thread-safe alert snapshot refreshed from an AlertSource.

    Example:
        cache = AlertCache(source, matcher, SyncMetrics(), interval_seconds=60.0)
        await cache.refresh()            # prime before serving
        task = asyncio.create_task(cache.run(shutdown_event))
        found = cache.query("node-1.example.com")
    """

    def __init__(
        self,
        source: AlertSourceProtocol,
        matcher: NodeMatcherProtocol,
        metrics: SyncMetrics,
        interval_seconds: float = 60.0,
        jitter: float = DEFAULT_JITTER,
    ) -> None:
        """
        Initialize the cache.

        Args:
            source: Alert backend adapter
            matcher: Compiled node matcher
            metrics: Sync metrics registered by the caller
            interval_seconds: Base refresh interval and per-fetch timeout
            jitter: Fraction of the interval randomly added or subtracted
        """
        self.source = source
        self.matcher = matcher
        self.metrics = metrics
        self.interval = interval_seconds
        self.jitter = jitter
        self._snapshot = CacheSnapshot()
        self._snapshot_lock = threading.Lock()
        self._refresh_lock = asyncio.Lock()

    @property
    def snapshot(self) -> CacheSnapshot:
        """The current snapshot."""
        with self._snapshot_lock:
            return self._snapshot

    def _swap(self, snapshot: CacheSnapshot) -> None:
        with self._snapshot_lock:
            self._snapshot = snapshot

    async def refresh(self) -> CacheSnapshot:
        """
        Fetch alerts once and replace the snapshot.

        Never raises for backend failures: they are recorded in the snapshot,
        counted and logged.

        Returns:
            The new snapshot
        """
        async with self._refresh_lock:
            start = time.monotonic()
            try:
                result: FetchResult = await asyncio.wait_for(
                    self.source.fetch_alerts(),
                    timeout=self.interval,
                )
            except asyncio.TimeoutError:
                snapshot = self._failed(TimeoutError(f"alert fetch timed out after {self.interval}s"))
            except Exception as e:
                snapshot = self._failed(e)
            else:
                snapshot = self._succeeded(result)
            finally:
                self.metrics.get_duration.observe(time.monotonic() - start)

            self._swap(snapshot)
            return snapshot

    def _failed(self, error: Exception) -> CacheSnapshot:
        logger.error(f"could not retrieve alerts: {error}")
        self.metrics.record_failure()
        return CacheSnapshot(retrieved_at=_utcnow(), last_error=error)

    def _succeeded(self, result: FetchResult) -> CacheSnapshot:
        partial_error = None
        if result.partial:
            partial_error = result.error
            logger.warning(f"partial alert retrieval, serving {len(result.alerts)} alerts: {result.error}")
            self.metrics.record_failure()
        self.metrics.set_cached(len(result.alerts))
        logger.debug(f"cached {len(result.alerts)} alerts")
        return CacheSnapshot(
            alerts=tuple(result.alerts),
            retrieved_at=_utcnow(),
            partial_error=partial_error,
        )

    def query(self, node_name: str) -> NodeAlerts:
        """
        Return the cached alerts that apply to a node.

        Args:
            node_name: Full node name (FullName); ShortName is derived from it

        Returns:
            NodeAlerts with matching alerts and the snapshot time

        Raises:
            CacheNotReadyError: No refresh has completed yet
            AlertFetchError: The most recent refresh failed entirely
            MatchEvaluationError: The matcher could not be evaluated
        """
        snapshot = self.snapshot
        if snapshot.retrieved_at is None:
            raise CacheNotReadyError()
        if snapshot.last_error is not None:
            raise AlertFetchError(snapshot.last_error, snapshot.retrieved_at)

        try:
            predicate = self.matcher.bind(node_name, short_name(node_name))
            matched = [a for a in snapshot.alerts if predicate(a.labels)]
        except MatchEvaluationError as e:
            e.retrieved_at = snapshot.retrieved_at
            raise

        return NodeAlerts(
            alerts=matched,
            retrieved_at=snapshot.retrieved_at,
            partial_error=snapshot.partial_error,
        )

    def next_delay(self) -> float:
        """Refresh interval with random jitter applied."""
        return self.interval * (1 + random.uniform(-self.jitter, self.jitter))

    async def run(self, shutdown: asyncio.Event) -> None:
        """
        Refresh loop that runs until shutdown is set.

        Waits one jittered interval before each refresh; prime the cache with
        refresh() before calling this.
        """
        logger.info(f"Alert sync loop starting (interval: {self.interval}s)")
        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=self.next_delay())
            except asyncio.TimeoutError:
                await self.refresh()
        logger.info("Alert sync loop stopped")


__all__ = ["AlertCache", "CacheSnapshot", "NodeAlerts"]
