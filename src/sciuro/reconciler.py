"""
ConditionReconciler: compute a node's next condition list from its alerts.

Conditions created from alerts have the structure:

    NodeCondition(
        type=condition_prefix + labels["alertname"],
        status="True" if firing, "False" if not firing,
               "Unknown" if alerts are unavailable,
        last_heartbeat_time=now,
        last_transition_time=now if status changed,
        reason="AlertIsFiring" | "AlertIsNotFiring" | "AlertsUnavailable",
        message="[P<priority>] <annotations.summary>",
    )

The prefix marks conditions this system owns. Conditions without it belong
to other controllers and are passed through untouched, in order.

When several alerts map to the same condition type, the one with the lowest
priority label wins (default 9); the first one seen wins ties.

A condition that has been False for longer than the linger duration is
removed. A linger of zero keeps resolved conditions forever.
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from sciuro.exceptions import MalformedPriorityError, MissingAlertNameError
from sciuro.metrics import ReconcileMetrics
from sciuro.types import AlertRecord, ConditionReason, ConditionStatus, NodeCondition

logger = logging.getLogger(__name__)

ALERT_NAME_LABEL = "alertname"
ALERT_PRIORITY_LABEL = "priority"
ALERT_SUMMARY_ANNOTATION = "summary"
DEFAULT_PRIORITY = 9

_INTEGER_RE = re.compile(r"[+-]?[0-9]+")


@dataclass
class MatchedCondition:
    """A prospective condition built from one alert, with its priority."""

    condition: NodeCondition
    priority: int


def parse_priority(alert: AlertRecord) -> int:
    """
    Read the priority label of an alert.

    Raises:
        MalformedPriorityError: If the label is present but not an integer
    """
    raw = alert.labels.get(ALERT_PRIORITY_LABEL)
    if raw is None:
        logger.debug(f"no priority label on {alert.name}, using default priority")
        return DEFAULT_PRIORITY
    if not _INTEGER_RE.fullmatch(raw):
        raise MalformedPriorityError(alert.labels, raw)
    return int(raw)


def alert_to_condition(alert: AlertRecord, now: datetime, prefix: str) -> MatchedCondition:
    """
    Convert a firing alert into a True condition.

    Raises:
        MissingAlertNameError: If the alert has no (or an empty) alertname
        MalformedPriorityError: If the priority label does not parse
    """
    alertname = alert.labels.get(ALERT_NAME_LABEL, "")
    if not alertname:
        raise MissingAlertNameError(alert.labels)

    priority = parse_priority(alert)
    message = f"[P{priority}]"
    summary = alert.annotations.get(ALERT_SUMMARY_ANNOTATION)
    if summary is not None:
        message = f"{message} {summary}"

    return MatchedCondition(
        condition=NodeCondition(
            type=f"{prefix}{alertname}",
            status=ConditionStatus.TRUE.value,
            reason=ConditionReason.FIRING.value,
            message=message,
            last_heartbeat_time=now,
            last_transition_time=now,
        ),
        priority=priority,
    )


class ConditionReconciler:
    """
    Pure condition computation for one node per call.

    Stateless apart from configuration and the transition counter, so a
    single instance is shared by all reconcile workers.

    Example:
        reconciler = ConditionReconciler(
            prefix="AlertManager_",
            linger=timedelta(hours=96),
            metrics=ReconcileMetrics(),
        )
        desired = reconciler.reconcile(node.conditions, found.alerts, found.retrieved_at)
    """

    def __init__(
        self,
        prefix: str,
        linger: timedelta,
        metrics: ReconcileMetrics,
    ) -> None:
        self.prefix = prefix
        self.linger = linger
        self.metrics = metrics

    def owns(self, condition: NodeCondition) -> bool:
        """True if the condition type carries the configured prefix."""
        return condition.type.startswith(self.prefix)

    def incoming_conditions(
        self, alerts: list[AlertRecord], now: datetime
    ) -> dict[str, MatchedCondition]:
        """
        Convert alerts to conditions keyed by type, keeping the best priority.

        Raises:
            AlertConversionError: On the first alert that cannot be converted
        """
        incoming: dict[str, MatchedCondition] = {}
        for alert in alerts:
            matched = alert_to_condition(alert, now, self.prefix)
            best = incoming.get(matched.condition.type)
            if best is None or matched.priority < best.priority:
                incoming[matched.condition.type] = matched
        return incoming

    def reconcile(
        self,
        existing: list[NodeCondition],
        alerts: list[AlertRecord],
        now: datetime,
        fetch_error: Exception | None = None,
    ) -> list[NodeCondition]:
        """
        Compute the next condition list for a node.

        Args:
            existing: Current node conditions, in order
            alerts: Alerts matched to the node (ignored if fetch_error is set)
            now: Timestamp for heartbeats and transitions
            fetch_error: Set when alerts for the node could not be retrieved

        Returns:
            New condition list; existing is not modified

        Raises:
            MissingAlertNameError, MalformedPriorityError: The pass is aborted
                and nothing should be written for this node
        """
        incoming: dict[str, MatchedCondition] = {}
        if fetch_error is None:
            incoming = self.incoming_conditions(alerts, now)

        consumed: set[str] = set()
        result: list[NodeCondition] = []
        for condition in existing:
            if not self.owns(condition):
                result.append(condition)
                continue

            if fetch_error is not None:
                result.append(self._mark_unavailable(condition, now))
                continue

            matched = incoming.get(condition.type)
            if matched is not None:
                result.append(self._mark_firing(condition, matched.condition))
                consumed.add(condition.type)
                continue

            resolved = self._mark_not_firing(condition, now)
            if self._should_delete(resolved, now):
                self.metrics.record_transition(resolved.status, "")
                logger.info(f"deleting lingering condition {resolved.type}")
                continue
            result.append(resolved)

        for condition_type, matched in incoming.items():
            if condition_type in consumed:
                continue
            new = matched.condition
            self.metrics.record_transition("", new.status)
            logger.info(f"adding new condition {new.type} with status {new.status}")
            result.append(new)

        return result

    def _transition(self, condition: NodeCondition, status: str, now: datetime) -> NodeCondition:
        """Set status, updating transition time and metrics only on change."""
        if condition.status == status:
            return condition
        self.metrics.record_transition(condition.status, status)
        logger.info(f"updating condition {condition.type} status {condition.status} -> {status}")
        return replace(condition, status=status, last_transition_time=now)

    def _mark_unavailable(self, condition: NodeCondition, now: datetime) -> NodeCondition:
        condition = self._transition(condition, ConditionStatus.UNKNOWN.value, now)
        return replace(
            condition,
            reason=ConditionReason.UNAVAILABLE.value,
            message="",
            last_heartbeat_time=now,
        )

    def _mark_firing(self, condition: NodeCondition, incoming: NodeCondition) -> NodeCondition:
        condition = self._transition(condition, incoming.status, incoming.last_transition_time)
        return replace(
            condition,
            reason=incoming.reason,
            message=incoming.message,
            last_heartbeat_time=incoming.last_heartbeat_time,
        )

    def _mark_not_firing(self, condition: NodeCondition, now: datetime) -> NodeCondition:
        condition = self._transition(condition, ConditionStatus.FALSE.value, now)
        return replace(
            condition,
            reason=ConditionReason.NOT_FIRING.value,
            message="",
            last_heartbeat_time=now,
        )

    def _should_delete(self, condition: NodeCondition, now: datetime) -> bool:
        """A False condition is deleted once it has lingered past the limit."""
        if not self.linger:
            return False
        if condition.status != ConditionStatus.FALSE.value:
            return False
        if condition.last_transition_time is None:
            return True
        return now - condition.last_transition_time > self.linger
