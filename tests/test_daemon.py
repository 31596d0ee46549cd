"""
Tests for SyncDaemon wiring with fake cluster and alert backends.
"""

import asyncio
import threading

import pytest
from prometheus_client import CollectorRegistry

from sciuro.config import Settings
from sciuro.daemon import SyncDaemon
from sciuro.sources import FetchResult
from sciuro.types import AlertRecord, Node, NodeCondition


class FakeNodeStore:
    """Node store that announces every node once through the watch."""

    def __init__(self, *nodes: Node):
        self.nodes = {n.name: n for n in nodes}
        self.patches: list[str] = []

    async def get_node(self, name: str) -> Node | None:
        return self.nodes.get(name)

    async def patch_conditions(self, node: Node, conditions: list[NodeCondition]) -> None:
        self.patches.append(node.name)
        self.nodes[node.name] = Node(name=node.name, conditions=list(conditions))

    def watch_node_names(self, on_name, stop: threading.Event) -> None:
        for name in list(self.nodes):
            on_name(name)
        stop.wait()


class MockSource:
    """Alert source returning a fixed result."""

    def __init__(self, result: FetchResult):
        self.result = result
        self.closed = False

    async def fetch_alerts(self) -> FetchResult:
        return self.result

    async def aclose(self) -> None:
        self.closed = True


@pytest.mark.asyncio
async def test_daemon_syncs_nodes_until_shutdown():
    settings = Settings(
        _env_file=None,
        alertmanager_url="http://alertmanager:9093",
        alert_receiver="sciuro",
        node_filters='instance=~"{{ ShortName }}(:[0-9]+)?"',
    )
    nodes = FakeNodeStore(Node(name="node1.example.com"), Node(name="node2.example.com"))
    source = MockSource(
        FetchResult(alerts=[AlertRecord(labels={"alertname": "DiskFull", "instance": "node1:9100"})])
    )
    registry = CollectorRegistry()
    daemon = SyncDaemon(settings, nodes, source=source, registry=registry)

    task = asyncio.create_task(daemon.run(serve_metrics=False))
    await asyncio.sleep(0.2)
    daemon.shutdown()
    await asyncio.wait_for(task, timeout=2.0)

    assert nodes.patches == ["node1.example.com"]
    assert [c.type for c in nodes.nodes["node1.example.com"].conditions] == ["AlertManager_DiskFull"]
    assert nodes.nodes["node2.example.com"].conditions == []
    assert source.closed
    assert registry.get_sample_value("sync_num_cached") == 1
    assert registry.get_sample_value(
        "reconcile_update_status_total", {"old_status": "", "new_status": "True"}
    ) == 1
