from __future__ import annotations

import contextlib
import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import test_utils, web

from edgesync._transport import HttpNodeRegistry
from edgesync.config import RegistryEndpoint
from edgesync.exceptions import (
    EdgeSyncError,
    RegistryConflictError,
    RegistryError,
    RegistryNotFoundError,
)
from edgesync.models.node import Node
from edgesync.models.outcome import EntryStatus
from edgesync.reconciler import NodeReconciler
from edgesync.state.memory import InMemoryNodeRegistry

TOKEN = "s3cr3t"


@dataclass
class FakeRegistryServer:
    """aiohttp app exposing an in-memory registry over the nodes REST API."""

    backend: InMemoryNodeRegistry = field(default_factory=InMemoryNodeRegistry)
    requests: list[tuple[str, str, dict[str, Any] | None]] = field(default_factory=list)
    force_status: int | None = None
    raw_body: str | None = None

    async def _handle(self, request: web.Request) -> web.Response:
        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return web.json_response({"message": "unauthorized"}, status=401)

        text = await request.text()
        body = json.loads(text) if text else None
        self.requests.append((request.method, request.path, body))

        if self.force_status is not None:
            return web.json_response({"kind": "Status", "message": "forced failure"}, status=self.force_status)
        if self.raw_body is not None:
            return web.Response(text=self.raw_body, content_type="application/json")

        name = request.match_info.get("name", "")
        try:
            if request.method == "GET":
                node = await self.backend.get(name)
            elif request.method == "POST":
                node = await self.backend.create(Node.model_validate(body))
            elif request.method == "PUT":
                node = await self.backend.update(Node.model_validate(body))
            else:
                precondition = (body or {}).get("preconditions", {}).get("resourceVersion")
                await self.backend.delete(name, resource_version=precondition)
                return web.json_response({"kind": "Status", "status": "Success"})
        except RegistryNotFoundError as exc:
            return web.json_response({"kind": "Status", "message": str(exc)}, status=404)
        except RegistryConflictError as exc:
            return web.json_response({"kind": "Status", "message": str(exc)}, status=409)
        return web.json_response(node.to_wire(), status=201 if request.method == "POST" else 200)

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/api/v1/nodes/{name}", self._handle)
        app.router.add_post("/api/v1/nodes", self._handle)
        app.router.add_put("/api/v1/nodes/{name}", self._handle)
        app.router.add_delete("/api/v1/nodes/{name}", self._handle)
        return app


@contextlib.asynccontextmanager
async def _serve(fake: FakeRegistryServer, *, token: str | None = TOKEN) -> AsyncIterator[HttpNodeRegistry]:
    server = test_utils.TestServer(fake.app())
    await server.start_server()
    try:
        endpoint = RegistryEndpoint(base_url=f"http://{server.host}:{server.port}", token=token, request_timeout=5.0)
        async with HttpNodeRegistry(endpoint) as registry:
            yield registry
    finally:
        await server.close()


def _node(name: str, version: str) -> Node:
    return Node.model_validate(
        {"apiVersion": "v1", "kind": "Node", "metadata": {"name": name, "labels": {"edge-version": version}}}
    )


@pytest.mark.asyncio
async def test_crud_round_trip_over_http() -> None:
    fake = FakeRegistryServer()
    async with _serve(fake) as registry:
        created = await registry.create(_node("n1", "1"))
        fetched = await registry.get("n1")
        updated = await registry.update(_node("n1", "2").with_resource_version(fetched.resource_version))
        await registry.delete("n1", resource_version=updated.resource_version)

    assert created.resource_version == "1"
    assert fetched == created
    assert updated.label("edge-version") == "2"
    assert fake.backend.peek("n1") is None
    assert [(method, path) for method, path, _ in fake.requests] == [
        ("POST", "/api/v1/nodes"),
        ("GET", "/api/v1/nodes/n1"),
        ("PUT", "/api/v1/nodes/n1"),
        ("DELETE", "/api/v1/nodes/n1"),
    ]
    delete_body = fake.requests[-1][2]
    assert delete_body is not None
    assert delete_body["preconditions"] == {"resourceVersion": "2"}


@pytest.mark.asyncio
async def test_update_body_is_camel_case_wire_format() -> None:
    fake = FakeRegistryServer(InMemoryNodeRegistry([_node("n1", "1")]))
    async with _serve(fake) as registry:
        await registry.update(_node("n1", "2").with_resource_version("1"))

    _, _, body = fake.requests[0]
    assert body is not None
    assert body["apiVersion"] == "v1"
    assert body["metadata"]["resourceVersion"] == "1"
    assert "resource_version" not in body["metadata"]


@pytest.mark.asyncio
async def test_status_codes_map_to_registry_errors() -> None:
    fake = FakeRegistryServer(InMemoryNodeRegistry([_node("n1", "1")]))
    async with _serve(fake) as registry:
        with pytest.raises(RegistryNotFoundError) as not_found:
            await registry.get("missing")
        with pytest.raises(RegistryConflictError) as conflict:
            await registry.update(_node("n1", "2").with_resource_version("0"))

    assert not_found.value.status_code == 404
    assert conflict.value.status_code == 409
    assert conflict.value.node_name == "n1"


@pytest.mark.asyncio
async def test_server_error_is_registry_error() -> None:
    fake = FakeRegistryServer(force_status=503)
    async with _serve(fake) as registry:
        with pytest.raises(RegistryError) as exc_info:
            await registry.get("n1")

    assert not isinstance(exc_info.value, (RegistryNotFoundError, RegistryConflictError))
    assert exc_info.value.status_code == 503
    assert "forced failure" in str(exc_info.value)


@pytest.mark.asyncio
async def test_unauthorized_is_registry_error() -> None:
    fake = FakeRegistryServer()
    async with _serve(fake, token="wrong") as registry:
        with pytest.raises(RegistryError) as exc_info:
            await registry.get("n1")

    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_invalid_json_is_registry_error() -> None:
    fake = FakeRegistryServer(raw_body="{not json")
    async with _serve(fake) as registry:
        with pytest.raises(RegistryError):
            await registry.get("n1")


@pytest.mark.asyncio
async def test_unreachable_registry_is_registry_error() -> None:
    server = test_utils.TestServer(web.Application())
    await server.start_server()
    base_url = f"http://{server.host}:{server.port}"
    await server.close()

    async with HttpNodeRegistry(RegistryEndpoint(base_url=base_url, request_timeout=2.0)) as registry:
        with pytest.raises(RegistryError):
            await registry.get("n1")


@pytest.mark.asyncio
async def test_registry_requires_context_manager() -> None:
    registry = HttpNodeRegistry(RegistryEndpoint())

    with pytest.raises(EdgeSyncError):
        await registry.get("n1")


@pytest.mark.asyncio
async def test_reconciler_over_http() -> None:
    fake = FakeRegistryServer()
    async with _serve(fake) as registry:
        reconciler = NodeReconciler(registry)
        first = await reconciler.handle_report(
            json.dumps({"updateMap": {"n1": _node("n1", "1").to_wire()}}).encode()
        )
        second = await reconciler.handle_report(
            json.dumps({"updateMap": {"n1": _node("n1", "2").to_wire()}}).encode()
        )

    assert first.outcomes[0].status == EntryStatus.CREATED
    assert second.outcomes[0].status == EntryStatus.UPDATED
    stored = fake.backend.peek("n1")
    assert stored is not None
    assert stored.label("edge-version") == "2"
