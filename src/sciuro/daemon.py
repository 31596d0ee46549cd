"""
SyncDaemon: wires the alert cache, node controller and metrics endpoint.

Startup order:
1. Start the Prometheus metrics HTTP endpoint
2. Prime the alert cache with one refresh
3. Run the cache refresh loop, the node watch and the reconcile workers
   until SIGINT or SIGTERM

On shutdown the cache loop and the controller stop scheduling work, in-flight
reconciles finish (bounded by their timeout) and the alert source is closed.
"""

import asyncio
import functools
import logging
import signal
from datetime import timedelta
from typing import Protocol

from prometheus_client import CollectorRegistry, REGISTRY, start_http_server

from sciuro.cache import AlertCache
from sciuro.config import Settings
from sciuro.controller import NodeController, NodeWatchProtocol
from sciuro.driver import NodeClientProtocol, ReconcileDriver
from sciuro.match import create_matcher
from sciuro.metrics import ReconcileMetrics, SyncMetrics
from sciuro.reconciler import ConditionReconciler
from sciuro.sources import AlertSourceProtocol, create_alert_source

logger = logging.getLogger(__name__)


class NodeStoreProtocol(NodeClientProtocol, NodeWatchProtocol, Protocol):
    """Node client that can also watch for node changes."""


class SyncDaemon:
    """
    Long-running node condition syncer.

    Example:
        settings = Settings()
        nodes = KubernetesNodeClient(load_core_api(settings.kubeconfig))
        await SyncDaemon(settings, nodes).run()
    """

    def __init__(
        self,
        settings: Settings,
        nodes: NodeStoreProtocol,
        source: AlertSourceProtocol | None = None,
        registry: CollectorRegistry = REGISTRY,
    ) -> None:
        """
        Build every component from settings.

        Raises:
            ConfigurationError: If the matcher or alert source cannot be built
        """
        self.settings = settings
        self.nodes = nodes
        self.registry = registry
        self._shutdown = asyncio.Event()

        matcher = create_matcher(settings.node_filters, settings.node_expression)
        self.source = source or create_alert_source(settings)
        self.cache = AlertCache(
            source=self.source,
            matcher=matcher,
            metrics=SyncMetrics(registry),
            interval_seconds=settings.alert_cache_ttl,
        )
        self.reconciler = ConditionReconciler(
            prefix=settings.condition_prefix,
            linger=timedelta(seconds=settings.linger_duration),
            metrics=ReconcileMetrics(registry),
        )
        self.driver = ReconcileDriver(
            nodes=nodes,
            cache=self.cache,
            reconciler=self.reconciler,
            resync_seconds=settings.node_resync,
        )
        self.controller = NodeController(
            self.driver,
            max_concurrent=settings.max_concurrent_reconciles,
            reconcile_timeout=settings.reconcile_timeout,
        )

    def shutdown(self) -> None:
        """Request a graceful stop."""
        self._shutdown.set()

    def _handle_signal(self, sig: signal.Signals) -> None:
        logger.info(f"Received {sig.name}, shutting down...")
        self._shutdown.set()

    async def run(self, serve_metrics: bool = True) -> None:
        """
        Run until shutdown() is called or a termination signal arrives.

        Args:
            serve_metrics: Start the metrics HTTP endpoint on metrics_addr
        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, functools.partial(self._handle_signal, sig))

        if serve_metrics:
            host, port = self.settings.metrics_host_port
            start_http_server(port, addr=host, registry=self.registry)
            logger.info(f"Serving metrics on {host}:{port}")

        try:
            await self.cache.refresh()
            self.controller.start_watch(self.nodes)
            async with asyncio.TaskGroup() as tg:
                tg.create_task(self.cache.run(self._shutdown))
                tg.create_task(self.controller.run(self._shutdown))
        finally:
            await self.source.aclose()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
        logger.info("sciuro stopped")
