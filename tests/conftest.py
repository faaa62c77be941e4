from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from tootfeed.session import SessionManager
from tootfeed.storage import MemoryStorage, SessionRepository

ENDPOINT = "https://example.social"

STATUS = {
    "id": "109",
    "content": "<p>hello fediverse</p>",
    "created_at": "2024-03-01T12:30:00.000Z",
    "account": {"id": "1", "username": "alice", "acct": "alice", "display_name": "Alice"},
}


class FakeServer:
    """Answers the four calls the app makes; records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.apps_response: tuple[int, Any] = (200, {"id": "7", "client_id": "A", "client_secret": "B"})
        self.token_response: tuple[int, Any] = (200, {"access_token": "T1", "token_type": "Bearer", "scope": "read write"})
        self.timeline_response: tuple[int, Any] = (200, [STATUS])
        self.fail_with: httpx.HTTPError | None = None
        # path -> event; requests to that path wait until the event is set
        self.holds: dict[str, asyncio.Event] = {}

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        hold = self.holds.get(request.url.path)
        if hold is not None:
            await hold.wait()
        if self.fail_with is not None:
            raise self.fail_with
        path = request.url.path
        if request.method == "POST" and path == "/api/v1/apps":
            status, body = self.apps_response
        elif request.method == "POST" and path == "/oauth/token":
            status, body = self.token_response
        elif request.method == "GET" and path == "/api/v1/timelines/home":
            status, body = self.timeline_response
        else:
            status, body = 404, {"error": "Record not found"}
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    @staticmethod
    def json_body(request: httpx.Request) -> dict[str, Any]:
        return json.loads(request.content.decode("utf-8"))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage({"server_endpoint": ENDPOINT})


@pytest.fixture
def manager(storage: MemoryStorage, server: FakeServer) -> SessionManager:
    return SessionManager(SessionRepository(storage), client_factory=server.client)


async def wait_for_calls(server: FakeServer, path: str, count: int) -> None:
    for _ in range(1000):
        if len(server.calls(path)) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} call(s) to {path}, got {len(server.calls(path))}")
