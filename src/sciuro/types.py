"""
Core data types for alert-driven node conditions.

This module defines the internal data structures shared by the alert cache,
the condition reconciler and the Kubernetes adapter:
- AlertState / AlertRecord: a normalized alert observed from a backend
- ConditionStatus / ConditionReason: values this system writes on conditions
- NodeCondition: mirror of a Kubernetes Node status condition
- Node: the slice of a Node object the reconciler works with

External API payloads (Alertmanager, Prometheus) are validated with pydantic
models in sciuro.sources.types and converted into these dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AlertState(str, Enum):
    """Alert lifecycle states reported by the backends."""

    FIRING = "firing"
    PENDING = "pending"
    INACTIVE = "inactive"


class ConditionStatus(str, Enum):
    """Kubernetes condition status values."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionReason(str, Enum):
    """Reasons written on conditions owned by sciuro."""

    FIRING = "AlertIsFiring"
    NOT_FIRING = "AlertIsNotFiring"
    UNAVAILABLE = "AlertsUnavailable"


@dataclass(frozen=True)
class AlertRecord:
    """
    A single alert observed from Alertmanager or Prometheus.

    Records are built fresh on every fetch and never mutated. The cache
    replaces its whole list of records on each refresh.

    Attributes:
        labels: Alert labels. Conventionally includes "alertname".
        annotations: Alert annotations. May include a "summary".
        state: Alert state. Sources only hand firing alerts to the cache.
        starts_at: When the alert started firing, if the backend reports it.
        fingerprint: Backend identifier for the alert, empty if unknown.
    """

    labels: dict[str, str]
    annotations: dict[str, str] = field(default_factory=dict)
    state: AlertState = AlertState.FIRING
    starts_at: datetime | None = None
    fingerprint: str = ""

    @property
    def name(self) -> str:
        """Value of the alertname label, empty if absent."""
        return self.labels.get("alertname", "")


@dataclass(frozen=True)
class NodeCondition:
    """
    A Node status condition.

    Status and reason are kept as plain strings so that conditions owned by
    other controllers round-trip without loss.
    """

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_heartbeat_time: datetime | None = None
    last_transition_time: datetime | None = None


@dataclass
class Node:
    """
    The parts of a Kubernetes Node that sciuro reads and writes.

    Attributes:
        name: Node name (metadata.name)
        conditions: Ordered status conditions
        resource_version: metadata.resourceVersion at read time
    """

    name: str
    conditions: list[NodeCondition] = field(default_factory=list)
    resource_version: str | None = None


def short_name(node_name: str) -> str:
    """Return the node name up to the first '.'."""
    return node_name.split(".", 1)[0]
