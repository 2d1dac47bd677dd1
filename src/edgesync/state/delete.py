"""Best-effort node deletion."""

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
from edgesync.state.policy import DeletePolicy, check_delete_version
from edgesync.state.registry import NodeRegistry

_logger = logging.getLogger(__name__)


class DeleteOperation(ReconcileOperation):
    """Remove one node from the registry.

    Under :attr:`DeletePolicy.UNCONDITIONAL` the node is deleted by name
    straight away.  Under :attr:`DeletePolicy.VERSION_GATED` it is read
    first, the delete is refused if the stored node is newer, and the
    delete is issued with the stored concurrency token as precondition.

    A node that is already gone counts as success.
    """

    action = EntryAction.DELETE

    def __init__(
        self,
        registry: NodeRegistry,
        node: Node,
        *,
        policy: DeletePolicy = DeletePolicy.UNCONDITIONAL,
        edge_version_label: str = EDGE_VERSION_LABEL,
        retry: RetryPolicy | None = None,
        deadline: Deadline | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        super().__init__(registry, node, retry=retry, deadline=deadline, sleep=sleep)
        self._policy = policy
        self._label = edge_version_label
        self._stored: Node | None = None
        self._absent = False

    def _initial_phase(self) -> ReconcilePhase:
        if self._policy == DeletePolicy.UNCONDITIONAL:
            return ReconcilePhase.WRITING
        return ReconcilePhase.READING

    async def _read(self) -> None:
        try:
            self._stored = await self._call(lambda: self._registry.get(self.name))
        except RegistryNotFoundError:
            self._absent = True
            self._enter(ReconcilePhase.DONE)
            return
        self._enter(ReconcilePhase.CHECKING)

    def _check(self) -> None:
        if self._stored is None:
            raise RuntimeError(f"version check for node {self.name} reached before the stored node was read")
        check_delete_version(self._node, self._stored, label=self._label)
        self._enter(ReconcilePhase.WRITING)

    async def _write(self) -> None:
        precondition = self._stored.resource_version if self._stored is not None else None
        try:
            await self._call(lambda: self._registry.delete(self.name, resource_version=precondition))
        except RegistryNotFoundError:
            self._absent = True
        except RegistryConflictError as exc:
            if self._policy == DeletePolicy.UNCONDITIONAL:
                raise
            self._conflict(str(exc))
            return

        if self._absent:
            _logger.debug("Report node delete event: name(%s) already absent", self.name)
        else:
            _logger.debug("Report node delete event success: name(%s)", self.name)
        self._enter(ReconcilePhase.DONE)

    def _outcome(self) -> EntryOutcome:
        return EntryOutcome(
            key=self.name,
            action=self.action,
            status=EntryStatus.ABSENT if self._absent else EntryStatus.DELETED,
            attempts=self.attempts,
            phases=tuple(self.phases),
            edge_version=self._node.label(self._label),
        )


async def delete_node(
    registry: NodeRegistry,
    node: Node,
    *,
    policy: DeletePolicy = DeletePolicy.UNCONDITIONAL,
    edge_version_label: str = EDGE_VERSION_LABEL,
    retry: RetryPolicy | None = None,
    deadline: Deadline | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> EntryOutcome:
    """Delete *node* from the registry according to *policy*."""
    return await DeleteOperation(
        registry,
        node,
        policy=policy,
        edge_version_label=edge_version_label,
        retry=retry,
        deadline=deadline,
        sleep=sleep,
    ).run()
