"""Node registry interface.

The registry is an external, shared, multi-writer store.  The reconciler
holds an instance of something satisfying :class:`NodeRegistry`; having
a protocol here makes it easy to pass test doubles while keeping the
production implementation (:class:`edgesync._transport.HttpNodeRegistry`)
concrete.
"""

from __future__ import annotations

from typing import Protocol

from edgesync.models.node import Node


class NodeRegistry(Protocol):
    """Structural registry interface used by the reconciler.

    Every write returns the node as stored, carrying the concurrency token
    the registry assigned to it.
    """

    async def get(self, name: str) -> Node:
        """Raise :class:`~edgesync.exceptions.RegistryNotFoundError` when absent."""
        ...

    async def create(self, node: Node) -> Node:
        """Raise :class:`~edgesync.exceptions.RegistryConflictError` when the name is taken."""
        ...

    async def update(self, node: Node) -> Node:
        """Raise :class:`~edgesync.exceptions.RegistryConflictError` on a stale token."""
        ...

    async def delete(self, name: str, *, resource_version: str | None = None) -> None:
        """Raise ``RegistryNotFoundError`` when absent, ``RegistryConflictError`` on a failed precondition."""
        ...
