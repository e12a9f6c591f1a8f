"""Shared fixtures: a scripted fake Homebridge UI behind httpx.MockTransport."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio

from homebridge_mcp.client import HomebridgeClient
from homebridge_mcp.config import Settings

BASE_URL = "http://homebridge.test:8581"

Responder = httpx.Response | Callable[[httpx.Request], httpx.Response]


class FakeHomebridge:
    """Records every request and answers from per-route response queues.

    Each route holds a list of responses consumed in order; the last one
    repeats once the queue is down to a single entry.
    """

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Responder]] = {}

    def on(self, method: str, path: str, *responses: Responder) -> None:
        self._routes[(method, path)] = list(responses)

    def login_ok(self, *tokens: str) -> None:
        self.on(
            "POST",
            "/api/auth/login",
            *[httpx.Response(200, json={"access_token": t}) for t in tokens],
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.raw_path.decode().split("?")[0]
        queue = self._routes.get((request.method, path))
        if not queue:
            return httpx.Response(404, text=f"no route {request.method} {path}")
        responder = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(responder):
            return responder(request)
        return responder

    def paths(self) -> list[str]:
        return [f"{r.method} {r.url.raw_path.decode()}" for r in self.calls]


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "homebridge_url": BASE_URL,
        "homebridge_username": "admin",
        "homebridge_password": "secret",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def fake() -> FakeHomebridge:
    return FakeHomebridge()


@pytest_asyncio.fixture()
async def client(fake: FakeHomebridge):
    http = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    hb = HomebridgeClient(make_settings(), http_client=http)
    yield hb
    await hb.close()
