"""
Alert sources: normalize alert backends into AlertRecord lists.

Key types:
- AlertSourceProtocol: capability consumed by AlertCache
- FetchResult: alerts plus partial-failure information
- AlertmanagerSource: single Alertmanager, one receiver
- PrometheusSource: single Prometheus, firing alerts only
- MultiPrometheusSource: fan-out over several Prometheus instances
- create_alert_source: build the configured source from Settings
"""

from sciuro.sources.alertmanager import AlertmanagerSource
from sciuro.sources.base import AlertSourceProtocol, FetchResult
from sciuro.sources.factory import create_alert_source
from sciuro.sources.prometheus import MultiPrometheusSource, PrometheusSource

__all__ = [
    "AlertSourceProtocol",
    "FetchResult",
    "AlertmanagerSource",
    "PrometheusSource",
    "MultiPrometheusSource",
    "create_alert_source",
]
