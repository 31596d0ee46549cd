"""
Exception classes for alert retrieval, matching and condition reconciliation.

The hierarchy mirrors how failures are handled:
- AlertSourceError: a backend could not be queried (transient)
- AlertCacheError: the cache cannot answer a node query; the reconciler marks
  owned conditions Unknown. Carries retrieved_at so the reconcile pass can
  still stamp heartbeats with the time of the last fetch attempt.
- AlertConversionError: an alert matched to a node cannot be turned into a
  condition; aborts that node's pass without patching.
- ConfigurationError: fatal at startup.

Per project patterns:
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

from datetime import datetime


class ConfigurationError(Exception):
    """Raised when settings or a node matcher are invalid at startup."""


class AlertSourceError(Exception):
    """
    Raised when alerts cannot be fetched from one or more backends.

    Attributes:
        errors: Per-backend errors keyed by backend URL
    """

    def __init__(self, message: str, errors: dict[str, BaseException] | None = None) -> None:
        self.errors = errors or {}
        super().__init__(message)

    @classmethod
    def combine(cls, errors: dict[str, BaseException]) -> "AlertSourceError":
        """Build one error describing every failed backend."""
        details = "; ".join(f"{url}: {err}" for url, err in errors.items())
        return cls(f"{len(errors)} alert source(s) failed: {details}", errors)


class AlertCacheError(Exception):
    """
    Base class for errors returned by AlertCache.query().

    Attributes:
        retrieved_at: Time of the last fetch attempt, None if none completed
    """

    def __init__(self, message: str, retrieved_at: datetime | None = None) -> None:
        self.retrieved_at = retrieved_at
        super().__init__(message)


class CacheNotReadyError(AlertCacheError):
    """Raised when the cache is queried before the first refresh completes."""

    def __init__(self) -> None:
        super().__init__("cache is not yet ready")


class AlertFetchError(AlertCacheError):
    """Raised when the most recent refresh failed entirely."""

    def __init__(self, cause: BaseException, retrieved_at: datetime) -> None:
        self.cause = cause
        super().__init__(str(cause) or type(cause).__name__, retrieved_at)


class MatchEvaluationError(AlertCacheError):
    """
    Raised when a node matcher cannot be evaluated.

    A broken matcher is a configuration bug, so it is reported rather than
    treated as "no match".

    Attributes:
        node_name: Node the matcher was evaluated for
    """

    def __init__(
        self,
        node_name: str,
        reason: str,
        retrieved_at: datetime | None = None,
    ) -> None:
        self.node_name = node_name
        self.reason = reason
        super().__init__(f"cannot match alerts for node {node_name}: {reason}", retrieved_at)


class AlertConversionError(Exception):
    """
    Base class for alerts that cannot be converted into a node condition.

    Attributes:
        labels: Labels of the offending alert
    """

    def __init__(self, message: str, labels: dict[str, str]) -> None:
        self.labels = labels
        super().__init__(message)


class MissingAlertNameError(AlertConversionError):
    """Raised when a matched alert has no alertname label."""

    def __init__(self, labels: dict[str, str]) -> None:
        super().__init__("no alertname label", labels)


class MalformedPriorityError(AlertConversionError):
    """
    Raised when the priority label of a matched alert is not an integer.

    Attributes:
        raw_priority: The label value that failed to parse
    """

    def __init__(self, labels: dict[str, str], raw_priority: str) -> None:
        self.raw_priority = raw_priority
        super().__init__(f"malformed alert priority {raw_priority!r}", labels)
