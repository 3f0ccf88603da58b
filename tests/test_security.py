import time

import pytest

from tutor_portal.core import security
from tutor_portal.core.errors import ProxyError
from tutor_portal.core.security import (
    InvalidTokenError,
    TokenExpiredError,
    check_token,
    decode_token_payload,
    extract_token,
    get_request_token,
    is_token_expired,
    require_fresh_token,
    session_user_from_payload,
)

from conftest import build_request, make_token


def test_extract_token_prefers_jwt_field():
    assert extract_token({"token": "t2", "jwt": "t1"}) == "t1"
    assert extract_token({"accessToken": "t3"}) == "t3"
    assert extract_token({"access_token": "t4"}) == "t4"


def test_extract_token_ignores_empty_and_non_mapping():
    assert extract_token({"jwt": "", "token": None}) is None
    assert extract_token(["jwt"]) is None
    assert extract_token(None) is None


def test_request_token_prefers_cookie_over_header():
    request = build_request(
        cookies={"auth_token": "from-cookie"},
        headers={"Authorization": "Bearer from-header"},
    )
    assert get_request_token(request) == "from-cookie"


def test_request_token_falls_back_to_bearer_header():
    assert get_request_token(build_request(headers={"Authorization": "Bearer abc"})) == "abc"
    assert get_request_token(build_request(headers={"Authorization": "Basic abc"})) is None
    assert get_request_token(build_request()) is None


def test_two_segment_token_is_rejected_before_decoding(monkeypatch):
    def fail_decode(_):
        raise AssertionError("payload must not be decoded")

    monkeypatch.setattr(security, "base64url_decode", fail_decode)
    with pytest.raises(InvalidTokenError):
        decode_token_payload("header.payload")


def test_decode_rejects_garbage_payload():
    with pytest.raises(InvalidTokenError):
        decode_token_payload("aaa.bbb.cccdummy")


def test_decode_reads_claims_without_verifying_signature():
    token = make_token(sub="maria", role="ADMIN")
    payload = decode_token_payload(token)
    assert payload["sub"] == "maria"
    assert payload["role"] == "ADMIN"


def test_expiry_is_checked_against_now():
    now = int(time.time())
    assert is_token_expired({"exp": now - 1}, now=now)
    assert not is_token_expired({"exp": now + 60}, now=now)
    assert not is_token_expired({}, now=now)


def test_check_token_raises_on_expired_token():
    with pytest.raises(TokenExpiredError):
        check_token(make_token(expires_in=-1))


def test_session_user_fallbacks():
    assert session_user_from_payload({"sub": "maria", "email": "maria@mail.com"}) == {
        "id": "maria",
        "name": "maria",
        "email": "maria@mail.com",
    }
    assert session_user_from_payload({"userId": 7, "name": "Maria"}) == {
        "id": "7",
        "name": "Maria",
        "email": "",
    }
    assert session_user_from_payload({}, fallback_name="guest") == {"id": "1", "name": "guest", "email": ""}


def test_require_fresh_token_messages():
    with pytest.raises(ProxyError) as missing:
        require_fresh_token(build_request())
    assert missing.value.status_code == 401
    assert missing.value.error == "Authentication required - please log in first"

    with pytest.raises(ProxyError) as expired:
        require_fresh_token(build_request(cookies={"auth_token": make_token(expires_in=-1)}))
    assert expired.value.error == "Token expired - please log in again"

    with pytest.raises(ProxyError) as invalid:
        require_fresh_token(build_request(headers={"Authorization": "Bearer only.two"}))
    assert invalid.value.error == "Invalid authentication token - please log in again"

    token = make_token()
    assert require_fresh_token(build_request(headers={"Authorization": f"Bearer {token}"})) == token
