import time

import httpx
import pytest
from fastapi.testclient import TestClient

from tutor_portal.core import security
from tutor_portal.core.errors import ProxyError
from tutor_portal.main import app
from tutor_portal.routes import auth as auth_route

from conftest import build_request, make_token, reply


AUTHENTICATE = "/api/v1/auth/authenticate"
CREDENTIALS = {"username": "maria", "password": "secret"}


def _set_cookies(response):
    return [value.lower() for value in response.headers.get_list("set-cookie")]


def test_login_sets_session_cookie_and_returns_backend_body(test_client, backend):
    backend.on("POST", AUTHENTICATE, reply(200, {"jwt": "aaa.bbb.cccdummy", "role": "ADMIN"}))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 200
    assert response.json() == {"jwt": "aaa.bbb.cccdummy", "role": "ADMIN"}
    cookie = response.headers["set-cookie"]
    assert "auth_token=aaa.bbb.cccdummy" in cookie
    lowered = cookie.lower()
    assert "httponly" in lowered
    assert "max-age=604800" in lowered
    assert "path=/" in lowered
    assert "samesite=lax" in lowered
    assert "secure" not in lowered
    assert backend.calls[0].headers["content-type"] == "application/json"


def test_login_marks_cookie_secure_in_production(test_client, backend, monkeypatch):
    monkeypatch.setattr(auth_route.settings, "ENVIRONMENT", "production")
    backend.on("POST", AUTHENTICATE, reply(200, {"accessToken": "aaa.bbb.ccc"}))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 200
    assert "secure" in response.headers["set-cookie"].lower()


def test_login_without_token_sets_no_cookie(test_client, backend):
    backend.on("POST", AUTHENTICATE, reply(200, {"status": "ok"}))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 200
    assert "set-cookie" not in response.headers


def test_login_maps_401_to_invalid_credentials(test_client, backend):
    backend.on("POST", AUTHENTICATE, reply(401, {"message": "Bad credentials"}))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 401
    body = response.json()
    assert body["error"] == "Invalid username or password"
    assert body["details"] == "Bad credentials"
    assert body["status"] == 401
    assert "timestamp" in body
    assert len(backend.calls) == 1


def test_login_gives_up_after_three_backend_500s(test_client, backend):
    backend.on("POST", AUTHENTICATE, reply(500, {"error": "boom"}))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 500
    body = response.json()
    assert body["error"] == "Backend service is experiencing issues. Please try again later."
    assert '"error": "boom"' in body["details"]
    assert len(backend.calls) == 3


def test_login_reports_gateway_errors_without_retrying(test_client, backend):
    backend.on("POST", AUTHENTICATE, reply(503, text="maintenance"))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 503
    assert response.json()["error"] == "Backend service is temporarily unavailable"
    assert response.json()["details"] == "maintenance"
    assert len(backend.calls) == 1


def test_login_network_failure_is_500(test_client, backend):
    backend.on("POST", AUTHENTICATE, httpx.ConnectError("connection refused"))

    response = test_client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 500
    assert response.json() == {"error": "Authentication failed", "details": "connection refused"}
    assert len(backend.calls) == 3


def test_login_without_backend_url(unconfigured, override_backend):
    with TestClient(app) as client:
        response = client.post("/api/auth/login", json=CREDENTIALS)

    assert response.status_code == 500
    assert response.json() == {"error": "Server misconfiguration: API_BASE_URL is not set"}
    assert override_backend.calls == []


def test_logout_clears_cookie(test_client):
    response = test_client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    cookies = _set_cookies(response)
    assert any("auth_token=" in c and "max-age=0" in c and "samesite=strict" in c for c in cookies)


def test_verify_after_logout_is_401(test_client, backend):
    token = make_token(sub="maria")
    backend.on("POST", AUTHENTICATE, reply(200, {"jwt": token}))

    assert test_client.post("/api/auth/login", json=CREDENTIALS).status_code == 200
    verified = test_client.get("/api/auth/verify")
    assert verified.status_code == 200
    assert verified.json()["user"]["name"] == "maria"

    test_client.post("/api/auth/logout")
    response = test_client.get("/api/auth/verify")

    assert response.status_code == 401
    assert response.json() == {"error": "No authentication token found"}


@pytest.mark.asyncio
async def test_verify_without_cookie():
    with pytest.raises(ProxyError) as exc:
        await auth_route.verify(build_request(headers={"Authorization": f"Bearer {make_token()}"}))
    assert exc.value.status_code == 401
    assert exc.value.error == "No authentication token found"


@pytest.mark.asyncio
async def test_verify_rejects_token_expired_one_second_ago():
    token = make_token(exp=int(time.time()) - 1, expires_in=None)
    with pytest.raises(ProxyError) as exc:
        await auth_route.verify(build_request(cookies={"auth_token": token}))
    assert exc.value.status_code == 401
    assert exc.value.error == "Token expired"


@pytest.mark.asyncio
async def test_verify_rejects_two_segment_token_without_decoding(monkeypatch):
    def fail_decode(_):
        raise AssertionError("payload must not be decoded")

    monkeypatch.setattr(security, "base64url_decode", fail_decode)
    with pytest.raises(ProxyError) as exc:
        await auth_route.verify(build_request(cookies={"auth_token": "header.payload"}))
    assert exc.value.status_code == 401
    assert exc.value.error == "Invalid token"


@pytest.mark.asyncio
async def test_verify_returns_session_user():
    token = make_token(sub="maria", email="maria@mail.com")
    result = await auth_route.verify(build_request(cookies={"auth_token": token}))

    assert result.authenticated is True
    assert result.jwt == token
    assert result.token == token
    assert result.user.id == "maria"
    assert result.user.name == "maria"
    assert result.user.email == "maria@mail.com"


@pytest.mark.asyncio
async def test_verify_defaults_user_without_sub():
    token = make_token(sub=None, email=None)
    result = await auth_route.verify(build_request(cookies={"auth_token": token}))

    assert result.user.id == "1"
    assert result.user.name == "User"
    assert result.user.email == ""


def test_login_error_messages():
    assert auth_route.login_error_message(401) == "Invalid username or password"
    assert auth_route.login_error_message(502) == "Backend service is temporarily unavailable"
    assert auth_route.login_error_message(504) == "Backend service is temporarily unavailable"
    assert auth_route.login_error_message(400) == "Authentication failed"
