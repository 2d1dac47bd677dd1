"""HTTP node registry client.

Talks to a Kubernetes-style REST nodes collection::

    GET    {base}/api/v1/nodes/{name}
    POST   {base}/api/v1/nodes
    PUT    {base}/api/v1/nodes/{name}
    DELETE {base}/api/v1/nodes/{name}

and maps HTTP status codes onto the registry error taxonomy.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp
from pydantic import ValidationError

from edgesync._constants import NODES_PATH, USER_AGENT
from edgesync._redact import redact_for_log
from edgesync.config import RegistryEndpoint
from edgesync.exceptions import (
    EdgeSyncError,
    RegistryConflictError,
    RegistryError,
    RegistryNotFoundError,
)
from edgesync.models.node import Node

_logger = logging.getLogger(__name__)


def _status_message(text: str) -> str:
    """Extract ``message`` from a Status body, falling back to the raw text."""
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return text[:200]
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return text[:200]


class HttpNodeRegistry:
    """Node registry backed by an HTTP API.

    Usage::

        async with HttpNodeRegistry(config.registry) as registry:
            reconciler = NodeReconciler(registry, config)
            await reconciler.handle_report(payload)
    """

    def __init__(
        self,
        endpoint: RegistryEndpoint,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._external_session = session is not None
        self._http = session
        self._timeout = aiohttp.ClientTimeout(total=endpoint.request_timeout)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> HttpNodeRegistry:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise EdgeSyncError("Registry client not initialized. Use 'async with HttpNodeRegistry(...) as registry:'")
        return self._http

    def _url(self, name: str | None = None) -> str:
        base = f"{self._endpoint.base_url.rstrip('/')}{NODES_PATH}"
        if name is None:
            return base
        return f"{base}/{quote(name, safe='')}"

    def _headers(self) -> dict[str, str]:
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if self._endpoint.token:
            headers["authorization"] = f"Bearer {self._endpoint.token}"
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        node_name: str,
        body: dict[str, Any] | None = None,
    ) -> Any:
        http = self._require_session()
        data = json.dumps(body, separators=(",", ":")) if body is not None else None

        _logger.debug("%s %s body=%s", method, url, redact_for_log(body))

        try:
            async with http.request(method, url, data=data, headers=self._headers(), timeout=self._timeout) as resp:
                status = resp.status
                text = await resp.text()
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise RegistryError(f"{method} {url} failed: {exc!r}", node_name=node_name) from exc

        if status == 404:
            raise RegistryNotFoundError(f"node {node_name} not found", node_name=node_name, status_code=status)
        if status == 409:
            raise RegistryConflictError(
                f"{method} node {node_name} conflicted: {_status_message(text)}",
                node_name=node_name,
                status_code=status,
            )
        if not 200 <= status < 300:
            raise RegistryError(
                f"HTTP {status} from {method} {url}: {_status_message(text)}",
                node_name=node_name,
                status_code=status,
            )

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise RegistryError(
                f"Invalid JSON from {method} {url}: {text[:200]}",
                node_name=node_name,
                status_code=status,
            ) from exc

    @staticmethod
    def _parse_node(payload: Any, *, node_name: str) -> Node:
        if not isinstance(payload, dict):
            raise RegistryError(f"registry returned no node object for {node_name}", node_name=node_name)
        try:
            return Node.model_validate(payload)
        except ValidationError as exc:
            raise RegistryError(f"registry returned an invalid node for {node_name}: {exc}", node_name=node_name) from exc

    # ------------------------------------------------------------------
    # NodeRegistry
    # ------------------------------------------------------------------

    async def get(self, name: str) -> Node:
        payload = await self._request("GET", self._url(name), node_name=name)
        return self._parse_node(payload, node_name=name)

    async def create(self, node: Node) -> Node:
        payload = await self._request("POST", self._url(), node_name=node.name, body=node.to_wire())
        return self._parse_node(payload, node_name=node.name)

    async def update(self, node: Node) -> Node:
        payload = await self._request("PUT", self._url(node.name), node_name=node.name, body=node.to_wire())
        return self._parse_node(payload, node_name=node.name)

    async def delete(self, name: str, *, resource_version: str | None = None) -> None:
        body: dict[str, Any] | None = None
        if resource_version is not None:
            body = {
                "kind": "DeleteOptions",
                "apiVersion": "v1",
                "preconditions": {"resourceVersion": resource_version},
            }
        await self._request("DELETE", self._url(name), node_name=name, body=body)
