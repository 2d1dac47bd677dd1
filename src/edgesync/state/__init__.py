"""State/registry layer.

This package owns every interaction with the node registry: the
edge-version ordering policy, the optimistic-concurrency upsert and
delete cycles, and the registry interface they are written against.
"""
