"""Node report envelope.

One envelope is emitted per reporting cycle by an edge cluster.  Field
names are accepted both in camelCase and in the capitalised spelling
used by the upstream Go reporter.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, ConfigDict, Field

from edgesync.models._base import EdgeBaseModel
from edgesync.models.node import Node


class NodeReport(EdgeBaseModel):
    """Batched node events from one edge report."""

    model_config = ConfigDict(extra="ignore")

    full_list: list[Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("fullList", "FullList", "full_list"),
    )
    """Full node snapshot.  Accepted but not reconciled."""
    update_map: dict[str, Node] | None = Field(
        default=None,
        validation_alias=AliasChoices("updateMap", "UpdateMap", "update_map"),
    )
    """Node name -> node state to create or update."""
    del_map: dict[str, Node] | None = Field(
        default=None,
        validation_alias=AliasChoices("delMap", "DelMap", "del_map"),
    )
    """Node name -> node state to delete."""

    @property
    def entry_count(self) -> int:
        return len(self.update_map or {}) + len(self.del_map or {})
