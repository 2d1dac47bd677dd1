"""Data models for node reports, nodes and reconciliation results."""

from edgesync.models._base import EdgeBaseModel
from edgesync.models.node import Node, ObjectMeta
from edgesync.models.outcome import EntryAction, EntryOutcome, EntryStatus, ReconcilePhase, ReportResult
from edgesync.models.report import NodeReport

__all__ = [
    "EdgeBaseModel",
    "EntryAction",
    "EntryOutcome",
    "EntryStatus",
    "Node",
    "NodeReport",
    "ObjectMeta",
    "ReconcilePhase",
    "ReportResult",
]
