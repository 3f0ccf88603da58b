# tutor_portal/core/security.py
"""
Session token helpers.

Tokens are JWTs issued by the backend. Nothing in this module verifies a
signature: the payload is decoded only to check structure and expiry and to
show who is logged in. Authorisation decisions stay with the backend, which
receives the token as a Bearer credential.
"""
import json
import time
from typing import Any, Dict, Mapping, Optional, Tuple
from fastapi import Request, status
from jose.utils import base64url_decode
from tutor_portal.core.config import settings
from tutor_portal.core.errors import ProxyError
import logging

logger = logging.getLogger(__name__)

# Field names the backend has used for the token, in priority order
TOKEN_FIELDS: Tuple[str, ...] = ("jwt", "token", "accessToken", "access_token")

class TokenError(Exception):
    pass

class InvalidTokenError(TokenError):
    pass

class TokenExpiredError(TokenError):
    pass

def extract_token(data: Any) -> Optional[str]:
    if not isinstance(data, Mapping):
        return None
    for field in TOKEN_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value:
            return value
    return None

def get_request_token(request: Request) -> Optional[str]:
    """Session cookie first, then an ``Authorization: Bearer`` header."""
    cookie_token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if cookie_token:
        return cookie_token

    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[len("Bearer "):] or None
    return None

def decode_token_payload(token: str) -> Dict[str, Any]:
    parts = token.split(".")
    if len(parts) != 3:
        raise InvalidTokenError("Invalid JWT structure")

    try:
        raw = base64url_decode(parts[1].encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError) as e:
        raise InvalidTokenError(f"Could not decode JWT payload: {e}") from e

    if not isinstance(payload, dict):
        raise InvalidTokenError("JWT payload is not an object")
    return payload

def is_token_expired(payload: Mapping[str, Any], now: Optional[float] = None) -> bool:
    exp = payload.get("exp")
    if exp is None:
        return False
    if now is None:
        now = int(time.time())
    try:
        return float(exp) < now
    except (TypeError, ValueError):
        raise InvalidTokenError("JWT exp claim is not numeric")

def check_token(token: str, now: Optional[float] = None) -> Dict[str, Any]:
    payload = decode_token_payload(token)
    if is_token_expired(payload, now):
        raise TokenExpiredError("Token expired")
    return payload

def session_user_from_payload(payload: Mapping[str, Any], fallback_name: Optional[str] = None) -> Dict[str, str]:
    sub = payload.get("sub")
    return {
        "id": str(sub or payload.get("userId") or "1"),
        "name": str(sub or payload.get("name") or payload.get("username") or fallback_name or "User"),
        "email": str(payload.get("email") or ""),
    }

def require_request_token(request: Request, message: str = "Authentication required - please log in") -> str:
    token = get_request_token(request)
    if not token:
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, message)
    return token

def require_fresh_token(request: Request) -> str:
    """Like ``require_request_token`` but also rejects malformed or expired tokens."""
    token = require_request_token(request, "Authentication required - please log in first")
    try:
        check_token(token)
    except TokenExpiredError:
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "Token expired - please log in again")
    except InvalidTokenError as e:
        logger.warning(f"Could not decode or validate token: {e}")
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "Invalid authentication token - please log in again")
    return token
