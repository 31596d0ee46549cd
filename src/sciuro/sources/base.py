"""
Alert source protocol and fetch result type.

Every backend adapter returns a FetchResult. Raising means nothing could be
retrieved; a degraded multi-backend fetch is reported with partial=True.
"""

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from sciuro.types import AlertRecord


@dataclass
class FetchResult:
    """
    Result of one fetch across all configured backends.

    Attributes:
        alerts: Alerts from every backend that answered
        partial: True if some backends failed while others succeeded
        error: Combined error for the failed backends when partial
    """

    alerts: list[AlertRecord] = field(default_factory=list)
    partial: bool = False
    error: Exception | None = None


@runtime_checkable
class AlertSourceProtocol(Protocol):
    """
    Protocol for alert backends.

    fetch_alerts() raises when no alerts could be retrieved at all. A
    degraded result from a multi-backend source is returned with
    partial=True instead of raising, so callers can keep the subset.
    """

    async def fetch_alerts(self) -> FetchResult:
        """Fetch currently firing alerts."""
        ...

    async def aclose(self) -> None:
        """Release HTTP connections."""
        ...
