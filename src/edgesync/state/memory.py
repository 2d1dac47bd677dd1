"""Deterministic in-memory node registry.

Implements :class:`edgesync.state.registry.NodeRegistry` with the same
optimistic-concurrency rules as the real registry: every write assigns a
new resource version, updates and conditional deletes must present the
current one.  Used for dry runs and as the registry double in tests.
"""

from __future__ import annotations

from edgesync.exceptions import RegistryConflictError, RegistryNotFoundError
from edgesync.models.node import Node


class InMemoryNodeRegistry:
    """Dict-backed node registry.

    Given the same sequence of calls it assigns the same resource
    versions, so tests can assert on them.
    """

    def __init__(self, nodes: list[Node] | None = None) -> None:
        self._nodes: dict[str, Node] = {}
        self._revision = 0
        self.calls: dict[str, int] = {}
        for node in nodes or []:
            self._store(node)

    def _record_call(self, method: str) -> None:
        self.calls[method] = self.calls.get(method, 0) + 1

    def _store(self, node: Node) -> Node:
        self._revision += 1
        stored = node.with_resource_version(str(self._revision))
        self._nodes[node.name] = stored
        return stored

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    @property
    def nodes(self) -> dict[str, Node]:
        return dict(self._nodes)

    def peek(self, name: str) -> Node | None:
        """Return the stored node without counting a registry call."""
        return self._nodes.get(name)

    async def get(self, name: str) -> Node:
        self._record_call("get")
        node = self._nodes.get(name)
        if node is None:
            raise RegistryNotFoundError(f"node {name} not found", node_name=name, status_code=404)
        return node

    async def create(self, node: Node) -> Node:
        self._record_call("create")
        if node.name in self._nodes:
            raise RegistryConflictError(f"node {node.name} already exists", node_name=node.name, status_code=409)
        return self._store(node)

    async def update(self, node: Node) -> Node:
        self._record_call("update")
        current = self._nodes.get(node.name)
        if current is None:
            raise RegistryNotFoundError(f"node {node.name} not found", node_name=node.name, status_code=404)
        if node.resource_version != current.resource_version:
            raise RegistryConflictError(
                f"node {node.name} resource version {node.resource_version} is stale "
                f"(current {current.resource_version})",
                node_name=node.name,
                status_code=409,
            )
        return self._store(node)

    async def delete(self, name: str, *, resource_version: str | None = None) -> None:
        self._record_call("delete")
        current = self._nodes.get(name)
        if current is None:
            raise RegistryNotFoundError(f"node {name} not found", node_name=name, status_code=404)
        if resource_version is not None and resource_version != current.resource_version:
            raise RegistryConflictError(
                f"node {name} delete precondition {resource_version} failed (current {current.resource_version})",
                node_name=name,
                status_code=409,
            )
        del self._nodes[name]
