"""Node identity resolution.

Edge clusters name their nodes independently, so two clusters may report
a node called ``worker-1``.  The registry key is made unique by appending
the reporting cluster's name (taken from the cluster label) to the node
name.
"""

from __future__ import annotations

from edgesync._constants import CLUSTER_LABEL, MAX_NAME_LENGTH, NODE_NAME_RE
from edgesync.exceptions import NodeIdentityError
from edgesync.models.node import Node


def unique_node_name(name: str, cluster: str | None) -> str:
    """Return *name* qualified with *cluster*, without suffixing it twice."""
    if not cluster:
        return name
    suffix = f".{cluster}"
    if name.endswith(suffix):
        return name
    return f"{name}{suffix}"


def resolve_node_identity(
    node: Node,
    *,
    key: str = "",
    cluster_label: str = CLUSTER_LABEL,
) -> Node:
    """Return a copy of *node* whose ``metadata.name`` is its unique registry key.

    Parameters
    ----------
    node
        Node state as reported.
    key
        The key the node was filed under in the report map.  Used as the
        name when the metadata carries none; otherwise it must agree with
        the metadata name (either the plain or the qualified form).
    cluster_label
        Label holding the reporting cluster's name.

    Raises
    ------
    NodeIdentityError
        When no name is available, when the key and metadata name
        disagree, or when the resulting key is not a valid node name.
    """
    base = node.name or key
    if not base:
        raise NodeIdentityError("node has neither metadata.name nor a report key", key=key)

    cluster = node.label(cluster_label) if cluster_label else None
    unique = unique_node_name(base, cluster)

    if key and node.name and key not in (node.name, unique):
        raise NodeIdentityError(
            f"report key {key!r} does not match node name {node.name!r}",
            key=key,
        )

    if len(unique) > MAX_NAME_LENGTH or not NODE_NAME_RE.fullmatch(unique):
        raise NodeIdentityError(f"{unique!r} is not a valid node name", key=key or base)

    if unique == node.name:
        return node
    return node.with_name(unique)
