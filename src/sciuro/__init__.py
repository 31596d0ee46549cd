"""
sciuro

Mirrors firing alerts from Alertmanager or Prometheus onto Kubernetes Node
status conditions. This package provides:

- Alert sources: Alertmanager v2 and (multi-)Prometheus HTTP adapters
- Node matchers: label-matcher templates and boolean expressions
- AlertCache: periodically refreshed alert snapshot queried per node
- ConditionReconciler: pure computation of a node's next condition list
- ReconcileDriver / NodeController: the per-node reconcile loop
- CLI infrastructure: Typer-based command structure
"""

__version__ = "0.1.0"

from sciuro.cache import AlertCache, CacheSnapshot, NodeAlerts
from sciuro.config import Settings
from sciuro.exceptions import (
    AlertCacheError,
    AlertConversionError,
    AlertFetchError,
    AlertSourceError,
    CacheNotReadyError,
    ConfigurationError,
    MalformedPriorityError,
    MatchEvaluationError,
    MissingAlertNameError,
)
from sciuro.reconciler import ConditionReconciler
from sciuro.types import (
    AlertRecord,
    AlertState,
    ConditionReason,
    ConditionStatus,
    Node,
    NodeCondition,
)

__all__ = [
    "__version__",
    # Core components
    "AlertCache",
    "CacheSnapshot",
    "NodeAlerts",
    "ConditionReconciler",
    "Settings",
    # Data types
    "AlertRecord",
    "AlertState",
    "ConditionReason",
    "ConditionStatus",
    "Node",
    "NodeCondition",
    # Errors
    "AlertCacheError",
    "AlertConversionError",
    "AlertFetchError",
    "AlertSourceError",
    "CacheNotReadyError",
    "ConfigurationError",
    "MalformedPriorityError",
    "MatchEvaluationError",
    "MissingAlertNameError",
]
