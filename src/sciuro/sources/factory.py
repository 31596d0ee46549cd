"""
Factory function for creating the configured alert source.

Exactly one backend family is active per deployment: either a single
Alertmanager or one or more Prometheus servers.
"""

import httpx

from sciuro.config import Settings
from sciuro.exceptions import ConfigurationError
from sciuro.sources.alertmanager import AlertmanagerSource
from sciuro.sources.base import AlertSourceProtocol
from sciuro.sources.prometheus import MultiPrometheusSource, PrometheusSource


def create_alert_source(settings: Settings) -> AlertSourceProtocol:
    """
    Create the alert source described by settings.

    Each backend gets its own httpx.AsyncClient with the configured timeout.
    A single Prometheus URL still goes through MultiPrometheusSource so the
    partial-failure contract is the same for one or many servers.

    Args:
        settings: Validated Settings

    Returns:
        AlertmanagerSource or MultiPrometheusSource

    Raises:
        ConfigurationError: If no backend (or both) is configured

    Example:
        source = create_alert_source(Settings(
            alertmanager_url="http://alertmanager:9093",
            alert_receiver="sciuro",
            node_filters='instance="{{ FullName }}"',
        ))
        result = await source.fetch_alerts()
    """
    if settings.alertmanager_url and settings.prometheus_urls:
        raise ConfigurationError("configure either Alertmanager or Prometheus, not both")

    if settings.alertmanager_url:
        if not settings.alert_receiver:
            raise ConfigurationError("an alert receiver is required for Alertmanager")
        return AlertmanagerSource(
            http=httpx.AsyncClient(
                base_url=settings.alertmanager_url,
                timeout=settings.http_timeout,
            ),
            receiver=settings.alert_receiver,
            silenced=settings.alert_silenced,
        )

    if settings.prometheus_urls:
        return MultiPrometheusSource(
            sources=[
                PrometheusSource(
                    http=httpx.AsyncClient(base_url=url, timeout=settings.http_timeout)
                )
                for url in settings.prometheus_urls
            ]
        )

    raise ConfigurationError("no alert backend configured")
