"""
Alertmanager API v2 client.

Retrieves active alerts routed to a single receiver. Alertmanager does the
receiver filtering server side, so the receiver must be the same for every
node in the cluster.

Key design decisions:
- Uses injected httpx.AsyncClient (base_url points at Alertmanager)
- Every alert returned is recorded as firing: the active=true query never
  returns resolved alerts
- Fails loudly on HTTP errors; AlertCache turns that into "data unavailable"
"""

from dataclasses import dataclass

import httpx
from pydantic import TypeAdapter, ValidationError

from sciuro.exceptions import AlertSourceError
from sciuro.sources.base import FetchResult
from sciuro.sources.types import AlertmanagerAlert, parse_timestamp
from sciuro.types import AlertRecord, AlertState

_ALERTS_ADAPTER = TypeAdapter(list[AlertmanagerAlert])


@dataclass
class AlertmanagerSource:
    """
    Alertmanager alert source with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to Alertmanager
        receiver: Receiver name used for server-side filtering
        silenced: Whether silenced alerts are included
        inhibited: Whether inhibited alerts are included

    Example:
        async with httpx.AsyncClient(base_url="http://alertmanager:9093") as http:
            source = AlertmanagerSource(http=http, receiver="sciuro")
            result = await source.fetch_alerts()
    """

    http: httpx.AsyncClient
    receiver: str
    silenced: bool = False
    inhibited: bool = True

    async def fetch_alerts(self) -> FetchResult:
        """
        Fetch active alerts for the configured receiver.

        Raises:
            AlertSourceError: On HTTP errors or a malformed response
        """
        params = {
            "active": "true",
            "silenced": "true" if self.silenced else "false",
            "inhibited": "true" if self.inhibited else "false",
            "receiver": self.receiver,
        }
        try:
            response = await self.http.get("/api/v2/alerts", params=params)
            response.raise_for_status()
            payload = _ALERTS_ADAPTER.validate_python(response.json())
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            raise AlertSourceError(
                f"could not retrieve alerts from Alertmanager: {e}",
                {str(self.http.base_url): e},
            ) from e

        return FetchResult(alerts=[self._to_record(a) for a in payload])

    async def aclose(self) -> None:
        await self.http.aclose()

    @staticmethod
    def _to_record(alert: AlertmanagerAlert) -> AlertRecord:
        return AlertRecord(
            labels=dict(alert.labels),
            annotations=dict(alert.annotations),
            state=AlertState.FIRING,
            starts_at=parse_timestamp(alert.starts_at),
            fingerprint=alert.fingerprint,
        )
