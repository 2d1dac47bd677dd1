"""Custom exception hierarchy for edgesync."""

from __future__ import annotations


class EdgeSyncError(Exception):
    """Base exception for all edgesync errors."""


class EdgeSyncConfigError(EdgeSyncError):
    """Invalid or missing configuration."""


class ReportDecodeError(EdgeSyncError):
    """The report envelope is malformed.

    Aborts processing of the whole envelope; no entry of a report that
    fails to decode is ever applied.
    """


class NodeIdentityError(EdgeSyncError):
    """A node's unique registry key cannot be derived from its metadata."""

    def __init__(self, message: str, *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class EdgeVersionError(EdgeSyncError):
    """Incoming node state is stale, a duplicate, or carries no usable edge-version."""

    def __init__(
        self,
        message: str,
        *,
        node_name: str = "",
        incoming: str | None = None,
        stored: str | None = None,
    ) -> None:
        self.node_name = node_name
        self.incoming = incoming
        self.stored = stored
        super().__init__(message)


class RegistryError(EdgeSyncError):
    """Node registry call failed (transport or backend error)."""

    def __init__(
        self,
        message: str,
        *,
        node_name: str = "",
        status_code: int | None = None,
    ) -> None:
        self.node_name = node_name
        self.status_code = status_code
        super().__init__(message)


class RegistryNotFoundError(RegistryError):
    """The requested node does not exist in the registry."""


class RegistryConflictError(RegistryError):
    """Optimistic-concurrency check failed.

    Raised when the concurrency token sent with a write is no longer the
    current one, when a delete precondition does not hold, or when a create
    collides with a node created concurrently.  The upsert engine catches
    this and restarts its read/check/write cycle.
    """


class ConflictRetryExhaustedError(RegistryError):
    """A node write kept conflicting until the retry budget ran out."""

    def __init__(self, message: str, *, node_name: str = "", attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message, node_name=node_name)


class DeadlineExceededError(EdgeSyncError):
    """The deadline for reconciling an entry passed before it completed."""

    def __init__(self, message: str, *, node_name: str = "") -> None:
        self.node_name = node_name
        super().__init__(message)
