"""
Kubernetes Node adapter.

Wraps the official kubernetes client for the three things sciuro needs:
- read a Node and convert its conditions into NodeCondition dataclasses
- write the condition list back to the node/status subresource
- watch Nodes so changes trigger a reconcile

The kubernetes client is blocking, so calls run in the default executor and
the watch runs in its own thread, handing node names back to the event loop.

Status writes are a JSON patch that replaces only /status/conditions and is
guarded by a resourceVersion test, so a concurrent update by another
controller makes the patch fail (and be retried) instead of being clobbered.
"""

import asyncio
import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from kubernetes import client, config, watch
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from sciuro.types import Node, NodeCondition

logger = logging.getLogger(__name__)

WATCH_TIMEOUT_SECONDS = 60
WATCH_RETRY_SECONDS = 5.0


def load_core_api(kubeconfig: str | None = None) -> client.CoreV1Api:
    """
    Build a CoreV1Api from a kubeconfig file or the in-cluster service account.

    Without an explicit kubeconfig, in-cluster config is tried first and the
    default kubeconfig location second.
    """
    if kubeconfig:
        config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            config.load_incluster_config()
        except ConfigException:
            config.load_kube_config()
    return client.CoreV1Api(client.ApiClient())


def format_time(value: datetime) -> str:
    """Format a timestamp the way the API server stores it (RFC 3339, UTC, seconds)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def condition_from_api(raw: client.V1NodeCondition) -> NodeCondition:
    return NodeCondition(
        type=raw.type,
        status=raw.status,
        reason=raw.reason or "",
        message=raw.message or "",
        last_heartbeat_time=raw.last_heartbeat_time,
        last_transition_time=raw.last_transition_time,
    )


def condition_to_api(condition: NodeCondition) -> dict[str, Any]:
    body: dict[str, Any] = {"type": condition.type, "status": condition.status}
    if condition.reason:
        body["reason"] = condition.reason
    if condition.message:
        body["message"] = condition.message
    if condition.last_heartbeat_time is not None:
        body["lastHeartbeatTime"] = format_time(condition.last_heartbeat_time)
    if condition.last_transition_time is not None:
        body["lastTransitionTime"] = format_time(condition.last_transition_time)
    return body


def node_from_api(raw: client.V1Node) -> Node:
    conditions = []
    if raw.status is not None and raw.status.conditions:
        conditions = [condition_from_api(c) for c in raw.status.conditions]
    return Node(
        name=raw.metadata.name,
        conditions=conditions,
        resource_version=raw.metadata.resource_version,
    )


def conditions_patch(node: Node, conditions: list[NodeCondition]) -> list[dict[str, Any]]:
    """Build the JSON patch replacing a node's status conditions."""
    ops: list[dict[str, Any]] = []
    if node.resource_version:
        ops.append(
            {"op": "test", "path": "/metadata/resourceVersion", "value": node.resource_version}
        )
    ops.append(
        {
            "op": "add",
            "path": "/status/conditions",
            "value": [condition_to_api(c) for c in conditions],
        }
    )
    return ops


class KubernetesNodeClient:
    """
    NodeClientProtocol implementation backed by CoreV1Api.

    Example:
        nodes = KubernetesNodeClient(load_core_api())
        node = await nodes.get_node("node-1.example.com")
    """

    def __init__(self, api: client.CoreV1Api) -> None:
        self.api = api

    async def get_node(self, name: str) -> Node | None:
        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, self.api.read_node, name)
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return node_from_api(raw)

    async def patch_conditions(self, node: Node, conditions: list[NodeCondition]) -> None:
        body = conditions_patch(node, conditions)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.api.patch_node_status, node.name, body)

    def watch_node_names(self, on_name: Callable[[str], None], stop: threading.Event) -> None:
        """
        Blocking watch loop; calls on_name for every Node event until stop is set.

        Each stream ends after WATCH_TIMEOUT_SECONDS so stop is noticed. When
        the resource version expires the watch restarts from scratch, which
        replays every Node as ADDED.
        """
        resource_version = None
        while not stop.is_set():
            w = watch.Watch()
            try:
                for event in w.stream(
                    self.api.list_node,
                    resource_version=resource_version,
                    timeout_seconds=WATCH_TIMEOUT_SECONDS,
                ):
                    if stop.is_set():
                        w.stop()
                        break
                    if event["type"] == "ERROR":
                        logger.warning(f"node watch error event: {event.get('raw_object')}")
                        resource_version = None
                        break
                    obj = event["object"]
                    resource_version = obj.metadata.resource_version
                    on_name(obj.metadata.name)
            except ApiException as e:
                if e.status == 410:
                    resource_version = None
                    continue
                logger.error(f"node watch failed: {e}")
                stop.wait(WATCH_RETRY_SECONDS)
            except Exception as e:
                logger.error(f"node watch failed: {e}")
                stop.wait(WATCH_RETRY_SECONDS)
