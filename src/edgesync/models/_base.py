"""Base model for node-report wire objects.

Every wire model inherits from :class:`EdgeBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys map
  automatically to snake_case fields, and are written back out in
  camelCase by :meth:`EdgeBaseModel.to_wire`.
* Frozen instances; changes go through ``model_copy(update=...)``.
* ``None`` collections (``"labels": null``) normalised to empty ones so
  that a node written back to the registry carries the same shape it
  was reported with.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EdgeBaseModel(BaseModel):
    """Base for wire models exchanged with edges and the registry."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump the model as a camelCase JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def none_to_empty_dict(value: Any) -> Any:
    """``BeforeValidator`` turning an explicit ``null`` into ``{}``."""
    return {} if value is None else value
