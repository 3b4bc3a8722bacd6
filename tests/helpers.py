"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: ``FakeManager`` stands in for the
manager's HTTP API so suites never need a real socket.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import json
from typing import Any

import httpx

from ptmclient._http import BASE_URL
from ptmclient.managers.tessera import escape_hash
from ptmclient.transport import Transport
from ptmclient.types import EncryptedPayloadHash

Handler = Callable[[httpx.Request], httpx.Response]


def raw_path(request: httpx.Request) -> str:
    """Request path exactly as sent (percent escapes kept, query dropped)."""
    return request.url.raw_path.split(b"?", 1)[0].decode("ascii")


def transaction_path(eph: EncryptedPayloadHash, suffix: str = "") -> str:
    return f"/transaction/{escape_hash(eph)}{suffix}"


def json_response(body: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(body).encode())


@dataclass
class FakeManager:
    """Scriptable manager API that records every request it receives.

    Routes are keyed by ``(method, raw path)``; unknown routes answer 404.
    """

    routes: dict[tuple[str, str], Handler | httpx.Response] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def route(self, method: str, path: str, response: Handler | httpx.Response) -> None:
        self.routes[(method, path)] = response

    def handle(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        target = self.routes.get((request.method, raw_path(request)))
        if target is None:
            return httpx.Response(404, content=b"not found")
        if isinstance(target, httpx.Response):
            return httpx.Response(target.status_code, content=target.content)
        return target(request)

    def transport(self) -> Transport:
        client = httpx.Client(transport=httpx.MockTransport(self.handle), base_url=BASE_URL)
        return Transport(client)

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method)
            and (path is None or raw_path(r) == path)
        ]


@dataclass
class RaisingTransport:
    """Transport double whose every call fails with *error*."""

    error: Exception
    calls: int = 0

    def get(self, path: str, **kwargs: Any) -> httpx.Response:
        del path, kwargs
        self.calls += 1
        raise self.error

    def build_request(self, method: str, path: str, **kwargs: Any) -> httpx.Request:
        return httpx.Request(method, f"{BASE_URL}{path}", **kwargs)

    def do(self, request: httpx.Request) -> httpx.Response:
        del request
        self.calls += 1
        raise self.error
