"""Report envelope decoding."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from edgesync.exceptions import ReportDecodeError
from edgesync.models.report import NodeReport

_logger = logging.getLogger(__name__)


def decode_report(payload: bytes | bytearray | str) -> NodeReport:
    """Decode a node report envelope.

    The whole envelope either decodes or is rejected: a single malformed
    node state fails the report.

    Raises
    ------
    ReportDecodeError
        When the payload is not UTF-8 JSON, its top level is not an
        object, or any field has the wrong shape.
    """
    if isinstance(payload, (bytes, bytearray)):
        try:
            text = bytes(payload).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ReportDecodeError(f"node report is not valid UTF-8: {exc}") from exc
    else:
        text = payload

    try:
        decoded: Any = json.loads(text)
    except ValueError as exc:
        # JSONDecodeError, or an integer literal over the interpreter's digit limit.
        raise ReportDecodeError(f"node report is not JSON: {exc}") from exc

    if not isinstance(decoded, dict):
        raise ReportDecodeError(f"node report must be a JSON object, got {type(decoded).__name__}")

    try:
        report = NodeReport.model_validate(decoded)
    except ValidationError as exc:
        raise ReportDecodeError(f"node report has an invalid structure: {exc.error_count()} error(s): {exc}") from exc

    _logger.debug(
        "Decoded node report: updates=%d deletes=%d full_list=%s",
        len(report.update_map or {}),
        len(report.del_map or {}),
        report.full_list is not None,
    )
    return report
