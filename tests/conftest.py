import json
import os
import sys
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio
from fastapi import Request
from fastapi.testclient import TestClient
from jose import jwt

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tutor_portal.core.backend import get_backend_client
from tutor_portal.core.config import settings
from tutor_portal.main import app


BACKEND_URL = "http://backend.test"


Reply = Union[Callable[[httpx.Request], httpx.Response], Exception]


def reply(status_code: int = 200, json_body: Any = None, text: Optional[str] = None, headers: Optional[Dict[str, str]] = None):
    """Build a fresh httpx.Response for every call the fake backend answers."""
    def _reply(request: httpx.Request) -> httpx.Response:
        if json_body is not None:
            return httpx.Response(status_code, json=json_body, headers=headers)
        if text is not None:
            return httpx.Response(status_code, text=text, headers=headers)
        return httpx.Response(status_code, headers=headers)
    return _reply


class FakeBackend:
    """Scripted stand-in for the content backend, recording every request it sees."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.calls: List[httpx.Request] = []

    def on(self, method: str, path: str, *replies: Reply) -> "FakeBackend":
        self.routes[(method, path)] = list(replies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "not found"})
        # The last scripted reply repeats
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def paths(self) -> List[str]:
        return [request.url.path for request in self.calls]


def make_token(sub: str = "rose", email: str = "rose@mail.com", expires_in: Optional[int] = 3600, **claims) -> str:
    payload = {"sub": sub, "email": email, **claims}
    if expires_in is not None:
        payload["exp"] = int(time.time()) + expires_in
    return jwt.encode(payload, "backend-secret", algorithm="HS256")


def build_request(
    method: str = "GET",
    path: str = "/",
    body: Any = None,
    cookies: Optional[Dict[str, str]] = None,
    headers: Optional[Dict[str, str]] = None,
    raw_body: Optional[bytes] = None,
) -> Request:
    raw_headers = []
    payload = raw_body if raw_body is not None else (json.dumps(body).encode() if body is not None else b"")
    if body is not None:
        raw_headers.append((b"content-type", b"application/json"))
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        raw_headers.append((b"cookie", cookie_header.encode()))
    for key, value in (headers or {}).items():
        raw_headers.append((key.lower().encode(), value.encode()))

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": raw_headers,
        "scheme": "http",
        "server": ("testserver", 80),
    }

    async def receive():
        return {"type": "http.request", "body": payload, "more_body": False}

    return Request(scope, receive)


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(settings, "API_BASE_URL", BACKEND_URL)
    monkeypatch.setattr(settings, "PUBLIC_API_BASE_URL", "")
    monkeypatch.setattr(settings, "LOGIN_RETRY_DELAY_SECONDS", 0.0)
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    return settings


@pytest.fixture
def unconfigured(monkeypatch):
    monkeypatch.setattr(settings, "API_BASE_URL", "")
    monkeypatch.setattr(settings, "PUBLIC_API_BASE_URL", "")
    return settings


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def override_backend(backend):
    async def _client():
        async with backend.client() as client:
            yield client

    app.dependency_overrides[get_backend_client] = _client
    yield backend
    app.dependency_overrides.pop(get_backend_client, None)


@pytest.fixture
def test_client(configured, override_backend):
    with TestClient(app) as client:
        yield client


@pytest_asyncio.fixture
async def site_client(configured, override_backend):
    """An httpx client pointed at the ASGI app; its cookie jar plays the browser."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
