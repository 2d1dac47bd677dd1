"""Ingestion layer.

This package turns report bytes delivered by the transport into typed
reports and resolves the registry identity of every reported node.
"""

__all__: list[str] = []
