"""
Prometheus alerts API clients.

This module provides:
- PrometheusSource: reads GET /api/v1/alerts from one Prometheus server and
  keeps only firing alerts (pending and inactive alerts are dropped)
- MultiPrometheusSource: queries several Prometheus servers concurrently and
  unions the results, reporting a partial result when only some fail

Key design decisions:
- Uses injected httpx.AsyncClient per server
- Fails loudly on HTTP errors and on status != "success"
- A partial multi-server result is not an error for the cache: degraded data
  beats no data
"""

import asyncio
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from sciuro.exceptions import AlertSourceError
from sciuro.sources.base import FetchResult
from sciuro.sources.types import PrometheusAlert, PrometheusAlertsResponse, parse_timestamp
from sciuro.types import AlertRecord, AlertState


@dataclass
class PrometheusSource:
    """
    Prometheus alert source with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to Prometheus

    Example:
        async with httpx.AsyncClient(base_url="http://prometheus:9090") as http:
            source = PrometheusSource(http=http)
            result = await source.fetch_alerts()
    """

    http: httpx.AsyncClient

    @property
    def url(self) -> str:
        return str(self.http.base_url)

    async def fetch_alerts(self) -> FetchResult:
        """
        Fetch firing alerts.

        Raises:
            AlertSourceError: On HTTP errors, malformed responses or a
                non-success API status
        """
        try:
            response = await self.http.get("/api/v1/alerts")
            response.raise_for_status()
            data = PrometheusAlertsResponse(**response.json())
        except (httpx.HTTPError, ValidationError, ValueError, TypeError) as e:
            raise AlertSourceError(
                f"could not retrieve alerts from Prometheus {self.url}: {e}",
                {self.url: e},
            ) from e

        if data.status != "success":
            err = ValueError(f"Prometheus alerts query failed: {data.error or data.status}")
            raise AlertSourceError(str(err), {self.url: err})

        alerts = data.data.alerts if data.data else []
        return FetchResult(
            alerts=[self._to_record(a) for a in alerts if a.state == AlertState.FIRING.value]
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    @staticmethod
    def _to_record(alert: PrometheusAlert) -> AlertRecord:
        return AlertRecord(
            labels=dict(alert.labels),
            annotations=dict(alert.annotations),
            state=AlertState(alert.state),
            starts_at=parse_timestamp(alert.active_at),
        )


@dataclass
class MultiPrometheusSource:
    """
    Fan-out over several Prometheus servers.

    Attributes:
        sources: One PrometheusSource per server

    Example:
        source = MultiPrometheusSource(sources=[
            PrometheusSource(http=httpx.AsyncClient(base_url="http://prom-a:9090")),
            PrometheusSource(http=httpx.AsyncClient(base_url="http://prom-b:9090")),
        ])
        result = await source.fetch_alerts()
        if result.partial:
            print(f"degraded: {result.error}")
    """

    sources: list[PrometheusSource]

    async def fetch_alerts(self) -> FetchResult:
        """
        Fetch firing alerts from every server concurrently.

        Returns:
            Union of alerts from servers that answered. partial is True and
            error describes the failures when some, but not all, servers fail.

        Raises:
            AlertSourceError: If every server failed
        """
        results = await asyncio.gather(
            *(s.fetch_alerts() for s in self.sources),
            return_exceptions=True,
        )

        alerts: list[AlertRecord] = []
        errors: dict[str, BaseException] = {}
        for source, result in zip(self.sources, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                errors[source.url] = result
                continue
            alerts.extend(result.alerts)

        if not errors:
            return FetchResult(alerts=alerts)
        combined = AlertSourceError.combine(errors)
        if len(errors) == len(self.sources):
            raise combined
        return FetchResult(alerts=alerts, partial=True, error=combined)

    async def aclose(self) -> None:
        for source in self.sources:
            await source.aclose()
