"""Upstream node report reconciler."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from edgesync.config import ReconcilerConfig
from edgesync.exceptions import EdgeSyncError, NodeIdentityError
from edgesync.ingestion.decode import decode_report
from edgesync.ingestion.identity import resolve_node_identity
from edgesync.models.node import Node
from edgesync.models.outcome import EntryAction, EntryOutcome, ReportResult
from edgesync.models.report import NodeReport
from edgesync.state.delete import DeleteOperation
from edgesync.state.operation import Deadline, ReconcileOperation
from edgesync.state.registry import NodeRegistry
from edgesync.state.upsert import UpsertOperation

_logger = logging.getLogger(__name__)


class NodeReconciler:
    """Fold edge node reports into the shared node registry.

    Usage::

        reconciler = NodeReconciler(registry, ReconcilerConfig.from_env())
        result = await reconciler.handle_report(payload)

    Every update entry goes through a version-gated, optimistic-concurrency
    upsert; every delete entry through the delete handler.  A failing entry
    is logged and recorded in the returned :class:`ReportResult`; it never
    stops its siblings.  Only an undecodable envelope fails the report.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        config: ReconcilerConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._config = config if config is not None else ReconcilerConfig()
        self._clock = clock
        self._sleep = sleep

    @property
    def config(self) -> ReconcilerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    async def handle_report(self, payload: bytes | bytearray | str, *, timeout: float | None = None) -> ReportResult:
        """Decode a report envelope and reconcile all of its entries.

        Raises
        ------
        ReportDecodeError
            When the envelope is malformed; nothing is applied.
        """
        report = decode_report(payload)
        return await self.handle_node_report(report, timeout=timeout)

    async def handle_node_report(self, report: NodeReport, *, timeout: float | None = None) -> ReportResult:
        """Reconcile an already-decoded report."""
        full_list_ignored = False
        if report.full_list is not None:
            # Full-list resync has no defined semantics yet; accept the field and do nothing.
            _logger.debug("Ignoring full node list with %d entries", len(report.full_list))
            full_list_ignored = True

        report_deadline = Deadline.after(timeout, clock=self._clock)
        outcomes: list[EntryOutcome] = []
        work: dict[str, list[tuple[EntryAction, Node]]] = {}

        # Updates are queued before deletes so a key present in both maps
        # ends up deleted, as upstream applies them.
        for action, entries in ((EntryAction.UPSERT, report.update_map), (EntryAction.DELETE, report.del_map)):
            if entries is None:
                continue
            for key, node in entries.items():
                try:
                    resolved = resolve_node_identity(node, key=key, cluster_label=self._config.cluster_label)
                except NodeIdentityError as exc:
                    _logger.warning("Report node %s event skipped, identity of %r unresolved: %s", action, key, exc)
                    outcomes.append(EntryOutcome.failure(key, action, exc))
                    continue
                work.setdefault(resolved.name, []).append((action, resolved))

        semaphore = asyncio.Semaphore(self._config.max_concurrency)

        async def _worker(entries: list[tuple[EntryAction, Node]]) -> list[EntryOutcome]:
            async with semaphore:
                return [await self._run_entry(action, node, report_deadline) for action, node in entries]

        for worker_outcomes in await asyncio.gather(*(_worker(entries) for entries in work.values())):
            outcomes.extend(worker_outcomes)

        result = ReportResult(outcomes=outcomes, full_list_ignored=full_list_ignored)
        _logger.debug(
            "Node report reconciled: succeeded=%d failed=%d",
            len(result.succeeded),
            len(result.failed),
        )
        return result

    # ------------------------------------------------------------------
    # Single entries
    # ------------------------------------------------------------------

    async def create_or_update(self, node: Node, *, key: str = "") -> EntryOutcome:
        """Resolve *node*'s identity and upsert it, raising on failure."""
        resolved = resolve_node_identity(node, key=key, cluster_label=self._config.cluster_label)
        return await self._operation(EntryAction.UPSERT, resolved, Deadline(clock=self._clock)).run()

    async def delete(self, node: Node, *, key: str = "") -> EntryOutcome:
        """Resolve *node*'s identity and delete it, raising on failure."""
        resolved = resolve_node_identity(node, key=key, cluster_label=self._config.cluster_label)
        return await self._operation(EntryAction.DELETE, resolved, Deadline(clock=self._clock)).run()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _operation(self, action: EntryAction, node: Node, report_deadline: Deadline) -> ReconcileOperation:
        deadline = Deadline.after(self._config.entry_timeout, clock=self._clock).earliest(report_deadline)
        if action is EntryAction.UPSERT:
            return UpsertOperation(
                self._registry,
                node,
                edge_version_label=self._config.edge_version_label,
                retry=self._config.retry,
                deadline=deadline,
                sleep=self._sleep,
            )
        return DeleteOperation(
            self._registry,
            node,
            policy=self._config.delete_policy,
            edge_version_label=self._config.edge_version_label,
            retry=self._config.retry,
            deadline=deadline,
            sleep=self._sleep,
        )

    async def _run_entry(self, action: EntryAction, node: Node, report_deadline: Deadline) -> EntryOutcome:
        operation = self._operation(action, node, report_deadline)
        try:
            return await operation.run()
        except EdgeSyncError as exc:
            _logger.warning("Report node %s event failed: name(%s): %s", action, node.name, exc)
            return EntryOutcome.failure(
                node.name, action, exc, attempts=operation.attempts, phases=tuple(operation.phases)
            )
        except Exception as exc:
            _logger.error("Report node %s event crashed: name(%s)", action, node.name, exc_info=True)
            return EntryOutcome.failure(
                node.name, action, exc, attempts=operation.attempts, phases=tuple(operation.phases)
            )
