"""Read/check/write cycle shared by node upserts and version-gated deletes.

An operation moves through explicit phases::

    READING -> CHECKING -> WRITING -> DONE
       ^                      |
       +---- CONFLICT <-------+          (any phase) -> FAILED

A conflict means the registry entry changed between our read and our
write; the whole cycle restarts from a fresh read so the next write
carries the newest concurrency token.  Conflict retries are bounded by a
:class:`~edgesync.config.RetryPolicy` and the whole operation by a
:class:`Deadline`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from edgesync.config import RetryPolicy
from edgesync.exceptions import ConflictRetryExhaustedError, DeadlineExceededError
from edgesync.models.node import Node
from edgesync.models.outcome import EntryAction, EntryOutcome, ReconcilePhase
from edgesync.state.registry import NodeRegistry

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Deadline:
    """Absolute point in time (on *clock*) by which an operation must finish.

    ``at=None`` means no deadline.
    """

    at: float | None = None
    clock: Callable[[], float] = field(default=time.monotonic, compare=False)

    @classmethod
    def after(cls, seconds: float | None, *, clock: Callable[[], float] = time.monotonic) -> Deadline:
        if not seconds:
            return cls(None, clock)
        return cls(clock() + seconds, clock)

    def earliest(self, other: Deadline) -> Deadline:
        if other.at is None:
            return self
        if self.at is None or other.at < self.at:
            return other
        return self

    def remaining(self) -> float | None:
        if self.at is None:
            return None
        return self.at - self.clock()

    def check(self, node_name: str) -> None:
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise DeadlineExceededError(f"deadline passed while reconciling node {node_name}", node_name=node_name)

    async def run(self, fn: Callable[[], Awaitable[T]], *, node_name: str) -> T:
        """Await ``fn()``, cancelling it when the deadline passes."""
        self.check(node_name)
        remaining = self.remaining()
        if remaining is None:
            return await fn()
        timeout = asyncio.timeout(remaining)
        try:
            async with timeout:
                return await fn()
        except TimeoutError as exc:
            if timeout.expired():
                raise DeadlineExceededError(
                    f"deadline passed while reconciling node {node_name}",
                    node_name=node_name,
                ) from exc
            raise

    async def sleep(
        self,
        seconds: float,
        *,
        node_name: str,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Sleep for *seconds*, failing right away if that would overrun the deadline."""
        remaining = self.remaining()
        if remaining is not None and remaining <= seconds:
            raise DeadlineExceededError(
                f"deadline would pass during conflict backoff for node {node_name}",
                node_name=node_name,
            )
        if seconds > 0:
            await sleep(seconds)


class ReconcileOperation:
    """Phase-driven base for one entry's interaction with the registry.

    Subclasses implement :meth:`_read`, :meth:`_check`, :meth:`_write` and
    :meth:`_outcome`; each of the first three moves the operation to its
    next phase via :meth:`_enter`.
    """

    action: EntryAction

    def __init__(
        self,
        registry: NodeRegistry,
        node: Node,
        *,
        retry: RetryPolicy | None = None,
        deadline: Deadline | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._registry = registry
        self._node = node
        self._retry = retry if retry is not None else RetryPolicy()
        self._deadline = deadline if deadline is not None else Deadline()
        self._sleep = sleep
        self.phase = ReconcilePhase.READING
        self.phases: list[ReconcilePhase] = []
        self.attempts = 0
        self.conflicts = 0

    @property
    def name(self) -> str:
        return self._node.name

    def _enter(self, phase: ReconcilePhase) -> None:
        self.phase = phase
        self.phases.append(phase)

    async def run(self) -> EntryOutcome:
        """Drive the operation until it is done, raising on failure."""
        self._enter(self._initial_phase())
        try:
            while self.phase is not ReconcilePhase.DONE:
                self._deadline.check(self.name)
                if self.phase is ReconcilePhase.READING:
                    await self._read()
                elif self.phase is ReconcilePhase.CHECKING:
                    self._check()
                elif self.phase is ReconcilePhase.WRITING:
                    self.attempts += 1
                    await self._write()
                elif self.phase is ReconcilePhase.CONFLICT:
                    await self._back_off()
        except Exception:
            self._enter(ReconcilePhase.FAILED)
            raise
        return self._outcome()

    def _initial_phase(self) -> ReconcilePhase:
        return ReconcilePhase.READING

    async def _call(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await self._deadline.run(fn, node_name=self.name)

    def _conflict(self, reason: str) -> None:
        self.conflicts += 1
        _logger.debug("Conflict on node %s (attempt=%d): %s", self.name, self.attempts, reason)
        self._enter(ReconcilePhase.CONFLICT)

    async def _back_off(self) -> None:
        if not self._retry.allows(self.attempts):
            raise ConflictRetryExhaustedError(
                f"node {self.name} still conflicting after {self.attempts} write attempt(s)",
                node_name=self.name,
                attempts=self.attempts,
            )
        await self._deadline.sleep(self._retry.backoff(self.conflicts), node_name=self.name, sleep=self._sleep)
        self._enter(ReconcilePhase.READING)

    async def _read(self) -> None:
        raise NotImplementedError

    def _check(self) -> None:
        raise NotImplementedError

    async def _write(self) -> None:
        raise NotImplementedError

    def _outcome(self) -> EntryOutcome:
        raise NotImplementedError
