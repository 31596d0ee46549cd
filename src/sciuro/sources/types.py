"""
Pydantic response types for the alert backends.

This module provides Pydantic models for parsing responses from:
- Alertmanager API v2: GET /api/v2/alerts
- Prometheus HTTP API: GET /api/v1/alerts

These are API response types for external data validation. Internal types
(AlertRecord) are dataclasses in sciuro.types.

Notes:
- Timestamps are kept as strings here. Prometheus reports nanosecond
  precision, which is trimmed by parse_timestamp() before conversion.
- Alertmanager only returns active alerts from the endpoint we query, so its
  status.state ("active", "suppressed", "unprocessed") is informational.
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Alertmanager API v2 Response Types
# =============================================================================
# Based on: https://github.com/prometheus/alertmanager/blob/main/api/v2/openapi.yaml
# Response structure: [{"labels": {...}, "annotations": {...}, "status": {...}}]


class AlertmanagerAlertStatus(BaseModel):
    """Nested 'status' object of a gettable alert."""

    model_config = ConfigDict(populate_by_name=True)

    state: str = "active"
    silenced_by: list[str] = Field(default_factory=list, alias="silencedBy")
    inhibited_by: list[str] = Field(default_factory=list, alias="inhibitedBy")


class AlertmanagerReceiver(BaseModel):
    """Receiver reference attached to a gettable alert."""

    name: str


class AlertmanagerAlert(BaseModel):
    """
    Single entry from GET /api/v2/alerts.

    Example entry:
    {
        "labels": {"alertname": "NodeOnFire", "instance": "node1"},
        "annotations": {"summary": "Node has erupted into fire"},
        "startsAt": "2020-03-18T12:33:45.000Z",
        "fingerprint": "4f4d7c0d2b0b3b7e",
        "receivers": [{"name": "sciuro"}],
        "status": {"state": "active", "silencedBy": [], "inhibitedBy": []}
    }
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    starts_at: str | None = Field(default=None, alias="startsAt")
    ends_at: str | None = Field(default=None, alias="endsAt")
    fingerprint: str = ""
    receivers: list[AlertmanagerReceiver] = Field(default_factory=list)
    status: AlertmanagerAlertStatus = Field(default_factory=AlertmanagerAlertStatus)


# =============================================================================
# Prometheus Response Types
# =============================================================================
# Based on: https://prometheus.io/docs/prometheus/latest/querying/api/#alerts


class PrometheusAlert(BaseModel):
    """
    Single alert from GET /api/v1/alerts.

    State is one of "firing", "pending" or "inactive".
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)
    state: str
    active_at: str | None = Field(default=None, alias="activeAt")
    value: str = ""


class PrometheusAlertsData(BaseModel):
    """The 'data' field of the alerts response."""

    alerts: list[PrometheusAlert] = Field(default_factory=list)


class PrometheusAlertsResponse(BaseModel):
    """
    Response from GET /api/v1/alerts.

    Example response:
    {
        "status": "success",
        "data": {
            "alerts": [
                {
                    "labels": {"alertname": "HouseOnFire", "instance": "node1"},
                    "annotations": {},
                    "state": "firing",
                    "activeAt": "2018-07-04T20:27:12.60602144+02:00",
                    "value": "1e+00"
                }
            ]
        }
    }
    """

    status: str  # "success" or "error"
    data: PrometheusAlertsData | None = None
    errorType: str | None = None
    error: str | None = None


_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(raw: str | None) -> datetime | None:
    """
    Parse an RFC 3339 timestamp from either backend.

    Fractional seconds beyond microseconds are dropped. Returns None for
    missing or unparseable values.
    """
    if not raw:
        return None
    text = _FRACTION_RE.sub(r"\1", raw.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
