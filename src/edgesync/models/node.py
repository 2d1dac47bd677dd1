"""Node model.

Nodes are Kubernetes-shaped objects.  Only the metadata fields the
reconciler reads are typed; everything else (``spec``, ``status`` and any
unknown field) is carried through untouched so that the registry stores
exactly what the edge reported.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BeforeValidator, ConfigDict, Field

from edgesync.models._base import EdgeBaseModel, none_to_empty_dict

StringMap = Annotated[dict[str, str], BeforeValidator(none_to_empty_dict)]


class ObjectMeta(EdgeBaseModel):
    """Identifying metadata of a node."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    namespace: str | None = None
    labels: StringMap = Field(default_factory=dict)
    annotations: StringMap = Field(default_factory=dict)
    resource_version: str | None = None
    """Registry concurrency token.  Only ever echoed back from a fresh read."""


class Node(EdgeBaseModel):
    """A compute node as reported by an edge cluster and stored in the registry."""

    model_config = ConfigDict(extra="allow")

    api_version: str | None = None
    kind: str | None = None
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: Annotated[dict[str, Any], BeforeValidator(none_to_empty_dict)] = Field(default_factory=dict)
    status: Annotated[dict[str, Any], BeforeValidator(none_to_empty_dict)] = Field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.labels

    @property
    def resource_version(self) -> str | None:
        return self.metadata.resource_version

    def label(self, key: str) -> str | None:
        """Return the value of label *key*, or ``None`` when it is missing or empty."""
        value = self.metadata.labels.get(key)
        return value if value else None

    def with_name(self, name: str) -> Node:
        return self.model_copy(update={"metadata": self.metadata.model_copy(update={"name": name})})

    def with_resource_version(self, resource_version: str | None) -> Node:
        metadata = self.metadata.model_copy(update={"resource_version": resource_version})
        return self.model_copy(update={"metadata": metadata})
