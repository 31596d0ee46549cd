"""
Tests for the Kubernetes adapter.

Tests cover:
- condition conversion to and from API objects
- the JSON patch guarded by resourceVersion
- KubernetesNodeClient get/patch through a mock CoreV1Api
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client.exceptions import ApiException

from sciuro.kube import (
    KubernetesNodeClient,
    condition_from_api,
    condition_to_api,
    conditions_patch,
    format_time,
)
from sciuro.types import Node, NodeCondition

T0 = datetime(2020, 3, 18, 12, 33, 45, 123456, tzinfo=timezone.utc)


def _api_node(name: str = "node1", conditions=None) -> client.V1Node:
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name, resource_version="1234"),
        status=client.V1NodeStatus(conditions=conditions),
    )


def test_format_time_is_utc_seconds():
    assert format_time(T0) == "2020-03-18T12:33:45Z"
    plus_two = T0.astimezone(timezone(timedelta(hours=2)))
    assert format_time(plus_two) == "2020-03-18T12:33:45Z"


def test_condition_to_api_omits_empty_fields():
    body = condition_to_api(NodeCondition(type="AlertManager_X", status="False"))

    assert body == {"type": "AlertManager_X", "status": "False"}


def test_condition_to_api_uses_camel_case():
    body = condition_to_api(
        NodeCondition(
            type="AlertManager_X",
            status="True",
            reason="AlertIsFiring",
            message="[P1] on fire",
            last_heartbeat_time=T0,
            last_transition_time=T0,
        )
    )

    assert body == {
        "type": "AlertManager_X",
        "status": "True",
        "reason": "AlertIsFiring",
        "message": "[P1] on fire",
        "lastHeartbeatTime": "2020-03-18T12:33:45Z",
        "lastTransitionTime": "2020-03-18T12:33:45Z",
    }


def test_condition_from_api_defaults_empty_strings():
    raw = client.V1NodeCondition(type="Ready", status="True", last_heartbeat_time=T0)

    condition = condition_from_api(raw)

    assert condition == NodeCondition(type="Ready", status="True", last_heartbeat_time=T0)


def test_conditions_patch_tests_resource_version():
    node = Node(name="node1", resource_version="1234")
    conditions = [NodeCondition(type="Ready", status="True")]

    patch = conditions_patch(node, conditions)

    assert patch == [
        {"op": "test", "path": "/metadata/resourceVersion", "value": "1234"},
        {"op": "add", "path": "/status/conditions", "value": [{"type": "Ready", "status": "True"}]},
    ]


def test_conditions_patch_without_resource_version():
    patch = conditions_patch(Node(name="node1"), [])

    assert patch == [{"op": "add", "path": "/status/conditions", "value": []}]


@pytest.mark.asyncio
async def test_get_node_converts_conditions():
    api = MagicMock()
    api.read_node.return_value = _api_node(
        conditions=[client.V1NodeCondition(type="Ready", status="True", reason="KubeletReady")]
    )

    node = await KubernetesNodeClient(api).get_node("node1")

    api.read_node.assert_called_once_with("node1")
    assert node.name == "node1"
    assert node.resource_version == "1234"
    assert node.conditions == [NodeCondition(type="Ready", status="True", reason="KubeletReady")]


@pytest.mark.asyncio
async def test_get_node_without_conditions():
    api = MagicMock()
    api.read_node.return_value = _api_node(conditions=None)

    node = await KubernetesNodeClient(api).get_node("node1")

    assert node.conditions == []


@pytest.mark.asyncio
async def test_get_missing_node_returns_none():
    api = MagicMock()
    api.read_node.side_effect = ApiException(status=404, reason="Not Found")

    assert await KubernetesNodeClient(api).get_node("node1") is None


@pytest.mark.asyncio
async def test_get_node_propagates_other_errors():
    api = MagicMock()
    api.read_node.side_effect = ApiException(status=500, reason="Internal Server Error")

    with pytest.raises(ApiException):
        await KubernetesNodeClient(api).get_node("node1")


@pytest.mark.asyncio
async def test_patch_conditions_sends_json_patch():
    api = MagicMock()
    node = Node(name="node1", resource_version="1234")

    await KubernetesNodeClient(api).patch_conditions(node, [NodeCondition(type="Ready", status="True")])

    api.patch_node_status.assert_called_once_with("node1", conditions_patch(node, [NodeCondition(type="Ready", status="True")]))
