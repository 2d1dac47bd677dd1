"""Create-or-update of a single node against the registry."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from edgesync._constants import EDGE_VERSION_LABEL
from edgesync.config import RetryPolicy
from edgesync.exceptions import RegistryConflictError, RegistryNotFoundError
from edgesync.models.node import Node
from edgesync.models.outcome import EntryAction, EntryOutcome, EntryStatus, ReconcilePhase
from edgesync.state.operation import Deadline, ReconcileOperation
from edgesync.state.policy import check_edge_version
from edgesync.state.registry import NodeRegistry

_logger = logging.getLogger(__name__)


class UpsertOperation(ReconcileOperation):
    """Get, version-check and write one node.

    * Absent in the registry: the node is created as given; the first
      creation is not version-gated.
    * Present: the node must carry a strictly newer edge-version than the
      stored one, and is written with the stored concurrency token.

    The caller is responsible for resolving the node's identity first.
    """

    action = EntryAction.UPSERT

    def __init__(
        self,
        registry: NodeRegistry,
        node: Node,
        *,
        edge_version_label: str = EDGE_VERSION_LABEL,
        retry: RetryPolicy | None = None,
        deadline: Deadline | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(registry, node, retry=retry, deadline=deadline, sleep=sleep)
        self._label = edge_version_label
        self._stored: Node | None = None
        self._result: Node | None = None
        self._created = False

    async def _read(self) -> None:
        try:
            self._stored = await self._call(lambda: self._registry.get(self.name))
        except RegistryNotFoundError:
            self._stored = None
            self._enter(ReconcilePhase.WRITING)
            return
        self._enter(ReconcilePhase.CHECKING)

    def _check(self) -> None:
        if self._stored is None:
            raise RuntimeError(f"version check for node {self.name} reached before the stored node was read")
        check_edge_version(self._node, self._stored, label=self._label)
        self._enter(ReconcilePhase.WRITING)

    async def _write(self) -> None:
        stored = self._stored
        try:
            if stored is None:
                # A token reported by the edge belongs to the edge's own store.
                outgoing = self._node.with_resource_version(None)
                self._result = await self._call(lambda: self._registry.create(outgoing))
                self._created = True
            else:
                outgoing = self._node.with_resource_version(stored.resource_version)
                self._result = await self._call(lambda: self._registry.update(outgoing))
                self._created = False
        except RegistryConflictError as exc:
            self._conflict(str(exc))
            return
        except RegistryNotFoundError as exc:
            # Deleted between our read and our write.
            self._conflict(str(exc))
            return

        _logger.debug(
            "Report node %s event success: name(%s) edge-version(%s)",
            "create" if self._created else "update",
            self.name,
            self._node.label(self._label),
        )
        self._enter(ReconcilePhase.DONE)

    def _outcome(self) -> EntryOutcome:
        return EntryOutcome(
            key=self.name,
            action=self.action,
            status=EntryStatus.CREATED if self._created else EntryStatus.UPDATED,
            attempts=self.attempts,
            phases=tuple(self.phases),
            edge_version=self._node.label(self._label),
            resource_version=self._result.resource_version if self._result is not None else None,
        )


async def create_or_update_node(
    registry: NodeRegistry,
    node: Node,
    *,
    edge_version_label: str = EDGE_VERSION_LABEL,
    retry: RetryPolicy | None = None,
    deadline: Deadline | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> EntryOutcome:
    """Create *node* or update it if a strictly older version is stored."""
    return await UpsertOperation(
        registry,
        node,
        edge_version_label=edge_version_label,
        retry=retry,
        deadline=deadline,
        sleep=sleep,
    ).run()
