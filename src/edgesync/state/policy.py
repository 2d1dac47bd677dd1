"""Edge-version ordering policy.

Edges stamp every reported node with a counter that grows with each
report.  The registry must only ever move forward along that counter;
these checks are the sole guard against out-of-order or replayed reports
regressing stored state.
"""

from __future__ import annotations

from enum import StrEnum

from edgesync._constants import EDGE_VERSION_LABEL
from edgesync.exceptions import EdgeVersionError
from edgesync.ingestion.normalize import parse_edge_version
from edgesync.models.node import Node


class DeletePolicy(StrEnum):
    """How delete events interact with edge-version ordering."""

    UNCONDITIONAL = "unconditional"
    """Delete by name regardless of the stored edge-version."""
    VERSION_GATED = "version_gated"
    """Refuse to delete a node stored at a higher edge-version than the delete carries."""


def check_edge_version(incoming: Node, stored: Node, *, label: str = EDGE_VERSION_LABEL) -> None:
    """Accept *incoming* only if it is strictly newer than *stored*.

    Raises
    ------
    EdgeVersionError
        When either edge-version is missing or unparseable, or when the
        incoming version is equal to (duplicate) or lower than (stale)
        the stored one.
    """
    incoming_raw = incoming.label(label)
    stored_raw = stored.label(label)
    if incoming_raw is None or stored_raw is None:
        raise EdgeVersionError(
            f"node {incoming.name} edge-version is empty",
            node_name=incoming.name,
            incoming=incoming_raw,
            stored=stored_raw,
        )

    incoming_version = parse_edge_version(incoming_raw)
    stored_version = parse_edge_version(stored_raw)
    if incoming_version is None or stored_version is None:
        raise EdgeVersionError(
            f"node {incoming.name} edge-version is not an integer (incoming={incoming_raw!r}, stored={stored_raw!r})",
            node_name=incoming.name,
            incoming=incoming_raw,
            stored=stored_raw,
        )

    if incoming_version <= stored_version:
        raise EdgeVersionError(
            f"node {incoming.name} edge-version {incoming_raw} is not newer than stored edge-version {stored_raw}",
            node_name=incoming.name,
            incoming=incoming_raw,
            stored=stored_raw,
        )


def check_delete_version(incoming: Node, stored: Node, *, label: str = EDGE_VERSION_LABEL) -> None:
    """Accept a delete unless the stored node is newer than the delete.

    The delete itself must carry a parseable edge-version.  A stored node
    without one cannot be proven newer and may be deleted.

    Raises
    ------
    EdgeVersionError
        When the delete's edge-version is missing or unparseable, or the
        stored node has a strictly higher edge-version.
    """
    incoming_raw = incoming.label(label)
    incoming_version = parse_edge_version(incoming_raw)
    if incoming_version is None:
        raise EdgeVersionError(
            f"delete of node {incoming.name} carries no usable edge-version ({incoming_raw!r})",
            node_name=incoming.name,
            incoming=incoming_raw,
        )

    stored_raw = stored.label(label)
    stored_version = parse_edge_version(stored_raw)
    if stored_version is not None and stored_version > incoming_version:
        raise EdgeVersionError(
            f"node {incoming.name} stored edge-version {stored_raw} is newer than delete edge-version {incoming_raw}",
            node_name=incoming.name,
            incoming=incoming_raw,
            stored=stored_raw,
        )
