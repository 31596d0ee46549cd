"""
NodeController: work queue and worker pool for node reconciles.

This module implements the scheduling around ReconcileDriver:
- A de-duplicating queue keyed by node name
- At most one in-flight reconcile per node; a node enqueued while it is
  being processed is reconciled again once the current pass finishes
- max_concurrent_reconciles workers, each pass bounded by a timeout
- Delayed requeue for periodic resync, exponential backoff on failure
- A watch thread feeding node names from the cluster into the queue

Shutdown:
- stop() (or the shutdown event passed to run()) stops new work from being
  scheduled; workers finish their current pass, bounded by its timeout
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Protocol

from sciuro.driver import ReconcileResult
from sciuro.retry import RetryConfig

logger = logging.getLogger(__name__)


class NodeReconcilerProtocol(Protocol):
    async def reconcile(self, node_name: str) -> ReconcileResult:
        ...


class NodeWatchProtocol(Protocol):
    def watch_node_names(self, on_name: Callable[[str], None], stop: threading.Event) -> None:
        ...


class NodeController:
    """
    Runs node reconciles from a queue with bounded concurrency.

    Example:
        controller = NodeController(driver, max_concurrent=4, reconcile_timeout=45.0)
        controller.start_watch(nodes)
        await controller.run(shutdown_event)  # until shutdown_event is set
    """

    def __init__(
        self,
        driver: NodeReconcilerProtocol,
        max_concurrent: int = 1,
        reconcile_timeout: float = 45.0,
        retry: RetryConfig | None = None,
    ) -> None:
        """
        Initialize the controller.

        Args:
            driver: Object whose reconcile(node_name) performs one pass
            max_concurrent: Number of worker tasks
            reconcile_timeout: Seconds allowed for one pass
            retry: Backoff configuration for failed passes
        """
        self.driver = driver
        self.max_concurrent = max_concurrent
        self.reconcile_timeout = reconcile_timeout
        self.retry = retry or RetryConfig()

        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._queued: set[str] = set()
        self._processing: set[str] = set()
        self._dirty: set[str] = set()
        self._failures: dict[str, int] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._stopped = False
        self._watch_stop = threading.Event()

    @property
    def pending(self) -> set[str]:
        """Nodes waiting in the queue."""
        return set(self._queued)

    def enqueue(self, node_name: str) -> None:
        """Schedule a reconcile for a node as soon as a worker is free."""
        if self._stopped:
            return
        if node_name in self._processing:
            self._dirty.add(node_name)
            return
        if node_name in self._queued:
            return
        self._queued.add(node_name)
        self._queue.put_nowait(node_name)

    def enqueue_after(self, node_name: str, delay: float) -> None:
        """Schedule a reconcile after delay seconds, keeping any earlier timer."""
        if self._stopped:
            return
        loop = asyncio.get_running_loop()
        existing = self._timers.get(node_name)
        if existing is not None:
            if existing.when() <= loop.time() + delay:
                return
            existing.cancel()
        self._timers[node_name] = loop.call_later(delay, self._fire_timer, node_name)

    def _fire_timer(self, node_name: str) -> None:
        self._timers.pop(node_name, None)
        self.enqueue(node_name)

    async def process(self, node_name: str) -> None:
        """Run one reconcile pass and schedule the follow-up."""
        try:
            result = await asyncio.wait_for(
                self.driver.reconcile(node_name),
                timeout=self.reconcile_timeout,
            )
        except asyncio.TimeoutError:
            self._retry_later(node_name, f"timed out after {self.reconcile_timeout}s")
            return
        except Exception as e:
            self._retry_later(node_name, str(e) or type(e).__name__)
            return

        self._failures.pop(node_name, None)
        if result.requeue_after is not None:
            self.enqueue_after(node_name, result.requeue_after)

    def _retry_later(self, node_name: str, reason: str) -> None:
        attempt = self._failures.get(node_name, 0)
        self._failures[node_name] = attempt + 1
        delay = self.retry.calculate_delay(attempt)
        logger.error(f"reconcile of node {node_name} failed, retrying in {delay:.1f}s: {reason}")
        self.enqueue_after(node_name, delay)

    async def _worker(self, worker_id: int) -> None:
        while True:
            node_name = await self._queue.get()
            if node_name is None or self._stopped:
                break
            self._queued.discard(node_name)
            self._processing.add(node_name)
            try:
                await self.process(node_name)
            finally:
                self._processing.discard(node_name)
                if node_name in self._dirty:
                    self._dirty.discard(node_name)
                    self.enqueue(node_name)
        logger.debug(f"reconcile worker {worker_id} stopped")

    async def run(self, shutdown: asyncio.Event) -> None:
        """
        Run workers until shutdown is set, then drain in-flight passes.
        """
        logger.info(f"Node controller starting ({self.max_concurrent} worker(s))")
        workers = [asyncio.create_task(self._worker(i)) for i in range(self.max_concurrent)]
        await shutdown.wait()
        self.stop()
        await asyncio.gather(*workers)
        logger.info("Node controller stopped")

    def stop(self) -> None:
        """Stop scheduling work; workers exit after their current pass."""
        if self._stopped:
            return
        self._stopped = True
        self._watch_stop.set()
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for _ in range(self.max_concurrent):
            self._queue.put_nowait(None)

    def start_watch(self, nodes: NodeWatchProtocol) -> threading.Thread:
        """
        Start a daemon thread that enqueues node names from a watch.

        The blocking watch only notices stop between events, so it runs on a
        daemon thread that is not joined at shutdown.
        """
        loop = asyncio.get_running_loop()

        def on_name(node_name: str) -> None:
            if self._watch_stop.is_set():
                return
            try:
                loop.call_soon_threadsafe(self.enqueue, node_name)
            except RuntimeError:
                # Event loop closed while the watch was delivering an event
                self._watch_stop.set()

        thread = threading.Thread(
            target=nodes.watch_node_names,
            args=(on_name, self._watch_stop),
            name="node-watch",
            daemon=True,
        )
        thread.start()
        return thread
