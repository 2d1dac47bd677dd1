"""edgesync - Upstream node-state reconciler for hierarchical edge clusters."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("edgesync")
except PackageNotFoundError:
    __version__ = "0+local"
from edgesync._transport import HttpNodeRegistry
from edgesync.config import ReconcilerConfig, RegistryEndpoint, RetryPolicy
from edgesync.exceptions import (
    ConflictRetryExhaustedError,
    DeadlineExceededError,
    EdgeSyncConfigError,
    EdgeSyncError,
    EdgeVersionError,
    NodeIdentityError,
    RegistryConflictError,
    RegistryError,
    RegistryNotFoundError,
    ReportDecodeError,
)
from edgesync.ingestion.decode import decode_report
from edgesync.models import (
    EntryAction,
    EntryOutcome,
    EntryStatus,
    Node,
    NodeReport,
    ObjectMeta,
    ReconcilePhase,
    ReportResult,
)
from edgesync.reconciler import NodeReconciler
from edgesync.state.memory import InMemoryNodeRegistry
from edgesync.state.policy import DeletePolicy, check_edge_version
from edgesync.state.registry import NodeRegistry

__all__ = [
    "__version__",
    "ConflictRetryExhaustedError",
    "DeadlineExceededError",
    "DeletePolicy",
    "EdgeSyncConfigError",
    "EdgeSyncError",
    "EdgeVersionError",
    "EntryAction",
    "EntryOutcome",
    "EntryStatus",
    "HttpNodeRegistry",
    "InMemoryNodeRegistry",
    "Node",
    "NodeIdentityError",
    "NodeReconciler",
    "NodeRegistry",
    "NodeReport",
    "ObjectMeta",
    "ReconcilePhase",
    "ReconcilerConfig",
    "RegistryConflictError",
    "RegistryEndpoint",
    "RegistryError",
    "RegistryNotFoundError",
    "ReportDecodeError",
    "ReportResult",
    "RetryPolicy",
    "check_edge_version",
    "decode_report",
]
