#!/usr/bin/env python3
"""Replay captured node report envelopes against a node registry.

Each file is handed to the reconciler exactly as the transport would
deliver it, in the order given on the command line.

Usage
-----
Against a live registry::

    export EDGESYNC_REGISTRY_URL="https://registry.example:6443"
    export EDGESYNC_REGISTRY_TOKEN="..."
    python scripts/replay_report.py report-1.json report-2.json

Options::

    --dry-run            Reconcile into an empty in-memory registry instead
    --timeout SECONDS    Deadline for each report
    --verbose            Enable DEBUG logging
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from edgesync import (  # noqa: E402
    HttpNodeRegistry,
    InMemoryNodeRegistry,
    NodeReconciler,
    NodeRegistry,
    ReconcilerConfig,
    ReportDecodeError,
)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("reports", nargs="+", type=Path, help="Report envelope files (JSON)")
    parser.add_argument("--dry-run", action="store_true", help="Use an in-memory registry")
    parser.add_argument("--timeout", type=float, default=None, help="Deadline for each report in seconds")
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


async def _replay(registry: NodeRegistry, config: ReconcilerConfig, args: argparse.Namespace) -> list[dict[str, Any]]:
    reconciler = NodeReconciler(registry, config)
    summary: list[dict[str, Any]] = []
    for path in args.reports:
        entry: dict[str, Any] = {"file": str(path)}
        try:
            result = await reconciler.handle_report(path.read_bytes(), timeout=args.timeout)
        except ReportDecodeError as exc:
            entry["error"] = str(exc)
        else:
            entry["full_list_ignored"] = result.full_list_ignored
            entry["outcomes"] = [outcome.model_dump(mode="json", exclude_none=True) for outcome in result.outcomes]
        summary.append(entry)
    return summary


async def _main(args: argparse.Namespace) -> int:
    config = ReconcilerConfig.from_env()
    if args.dry_run:
        registry = InMemoryNodeRegistry()
        summary = await _replay(registry, config, args)
        print(json.dumps({"reports": summary, "registry": sorted(registry.nodes)}, indent=2))
    else:
        async with HttpNodeRegistry(config.registry) as http_registry:
            summary = await _replay(http_registry, config, args)
        print(json.dumps({"reports": summary}, indent=2))

    failed = any("error" in entry or any(o["status"] == "failed" for o in entry["outcomes"]) for entry in summary)
    return 1 if failed else 0


def main() -> None:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
