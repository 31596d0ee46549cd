"""
ReconcileDriver: one reconcile pass for one node.

For a node name:
1. Read the Node (a missing node is logged and not requeued)
2. Query the alert cache for that node
3. Run the ConditionReconciler
4. Patch the status subresource only if conditions changed
5. Ask to be requeued after the resync interval, so cache or backend
   failures heal without waiting for a watch event

Cache errors are not reconcile errors: they become the reconciler's
fetch_error and owned conditions turn Unknown. Conversion errors and API
errors propagate to the controller, which retries with backoff.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from sciuro.cache import NodeAlerts
from sciuro.exceptions import AlertCacheError
from sciuro.reconciler import ConditionReconciler
from sciuro.types import AlertRecord, Node, NodeCondition

logger = logging.getLogger(__name__)


@runtime_checkable
class NodeClientProtocol(Protocol):
    """Protocol for the cluster object store."""

    async def get_node(self, name: str) -> Node | None:
        """Return the node, or None if it does not exist."""
        ...

    async def patch_conditions(self, node: Node, conditions: list[NodeCondition]) -> None:
        """Replace the node's status conditions."""
        ...


@runtime_checkable
class AlertQueryProtocol(Protocol):
    """Read side of AlertCache used by the driver."""

    def query(self, node_name: str) -> NodeAlerts:
        ...


@dataclass
class ReconcileResult:
    """
    Outcome of a reconcile pass.

    Attributes:
        requeue_after: Seconds until the node should be reconciled again,
            None for no scheduled requeue
        patched: Whether a status patch was sent
    """

    requeue_after: float | None = None
    patched: bool = False


class ReconcileDriver:
    """
    Drives ConditionReconciler against live Node objects.

    Example:
        driver = ReconcileDriver(nodes, cache, reconciler, resync_seconds=120.0)
        result = await driver.reconcile("node-1.example.com")
    """

    def __init__(
        self,
        nodes: NodeClientProtocol,
        cache: AlertQueryProtocol,
        reconciler: ConditionReconciler,
        resync_seconds: float = 120.0,
    ) -> None:
        self.nodes = nodes
        self.cache = cache
        self.reconciler = reconciler
        self.resync = resync_seconds

    def _alerts_for(self, node_name: str) -> tuple[list[AlertRecord], datetime, Exception | None]:
        """Query the cache, folding cache errors into a fetch error."""
        try:
            found = self.cache.query(node_name)
        except AlertCacheError as e:
            logger.warning(f"alerts unavailable for node {node_name}: {e}")
            return [], _condition_time(e.retrieved_at), e

        if found.partial_error is not None:
            logger.debug(f"node {node_name} reconciled from a partial alert fetch")
        return found.alerts, _condition_time(found.retrieved_at), None

    async def reconcile(self, node_name: str) -> ReconcileResult:
        """
        Reconcile one node.

        Raises:
            AlertConversionError: A matched alert cannot become a condition
            Exception: Errors from the node client other than not-found
        """
        node = await self.nodes.get_node(node_name)
        if node is None:
            logger.info(f"could not find Node {node_name}, skipping")
            return ReconcileResult()

        alerts, now, fetch_error = self._alerts_for(node.name)
        desired = self.reconciler.reconcile(list(node.conditions), alerts, now, fetch_error)

        if desired == node.conditions:
            return ReconcileResult(requeue_after=self.resync)

        await self.nodes.patch_conditions(node, desired)
        logger.debug(f"patched conditions on node {node.name}")
        return ReconcileResult(requeue_after=self.resync, patched=True)


def _condition_time(retrieved_at: datetime | None) -> datetime:
    """Timestamp for condition updates: the fetch time, whole seconds."""
    # Node condition timestamps are serialized with second precision
    ts = retrieved_at or datetime.now(timezone.utc)
    return ts.replace(microsecond=0)
