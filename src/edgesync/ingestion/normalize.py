"""Normalization helpers.

Centralizes parsing of the string-typed values edges put in node labels.
"""

from __future__ import annotations

from typing import Any

from edgesync._constants import (
    EDGE_VERSION_MAX,
    EDGE_VERSION_MAX_LENGTH,
    EDGE_VERSION_MIN,
    EDGE_VERSION_RE,
)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


def parse_edge_version(value: Any) -> int | None:
    """Parse an edge-version label value.

    Accepts an optional sign followed by ASCII digits and nothing else
    (no surrounding whitespace, no ``_`` separators) whose value fits a
    signed 64-bit integer.  Anything else, including a missing or empty
    value, yields ``None``.
    """
    text = safe_str(value)
    if text is None or len(text) > EDGE_VERSION_MAX_LENGTH or not EDGE_VERSION_RE.fullmatch(text):
        return None
    parsed = int(text)
    if not EDGE_VERSION_MIN <= parsed <= EDGE_VERSION_MAX:
        return None
    return parsed
