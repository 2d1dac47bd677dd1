"""Internal constants shared across the library."""

import re

#: Label carrying the edge-assigned report counter for a node.
EDGE_VERSION_LABEL = "edge-version"
#: Label naming the edge cluster a node was reported by.
CLUSTER_LABEL = "ote-cluster"

NODES_PATH = "/api/v1/nodes"
USER_AGENT = "edgesync/0.1"

# DNS-1123 subdomain, the naming rule for cluster-scoped node objects.
MAX_NAME_LENGTH = 253
NODE_NAME_RE = re.compile(r"[a-z0-9]([-a-z0-9]*[a-z0-9])?(\.[a-z0-9]([-a-z0-9]*[a-z0-9])?)*")

# Edge-version counters are parsed like a signed decimal integer, nothing else.
EDGE_VERSION_RE = re.compile(r"[+-]?[0-9]+")
# Counters must fit a signed 64-bit integer; longer strings are rejected unparsed.
EDGE_VERSION_MAX_LENGTH = 20
EDGE_VERSION_MIN = -(2**63)
EDGE_VERSION_MAX = 2**63 - 1
