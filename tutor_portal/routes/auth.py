# tutor_portal/routes/auth.py
from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from datetime import datetime, timezone
import json
import httpx
from tutor_portal.core.backend import (
    authenticate_with_retry,
    get_backend_client,
    is_json,
    require_base_url,
)
from tutor_portal.core.config import settings
from tutor_portal.core.errors import ProxyError
from tutor_portal.core.security import (
    InvalidTokenError,
    TokenExpiredError,
    check_token,
    extract_token,
)
from tutor_portal.models.auth import LogoutResponse, SessionUser, VerifyResponse
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value=token,
        max_age=settings.AUTH_COOKIE_MAX_AGE,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite="lax",
    )

def clear_auth_cookie(response: Response) -> None:
    # Expire it and delete it as well; clients disagree on which one they honour
    response.set_cookie(
        key=settings.AUTH_COOKIE_NAME,
        value="",
        max_age=0,
        path="/",
        secure=settings.secure_cookies,
        httponly=True,
        samesite="strict",
    )
    response.delete_cookie(key=settings.AUTH_COOKIE_NAME, path="/")

def login_error_message(status_code: int) -> str:
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "Invalid username or password"
    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        return "Backend service is experiencing issues. Please try again later."
    if status.HTTP_502_BAD_GATEWAY <= status_code <= status.HTTP_504_GATEWAY_TIMEOUT:
        return "Backend service is temporarily unavailable"
    return "Authentication failed"

def login_failure(response: httpx.Response) -> ProxyError:
    details = None
    try:
        if is_json(response):
            error_json = response.json()
            if isinstance(error_json, dict) and error_json.get("message"):
                details = error_json["message"]
            else:
                details = json.dumps(error_json, indent=2)
        else:
            details = response.text
    except ValueError:
        details = "Could not parse error response"

    logger.error(f"Authentication failed: {response.status_code} {response.reason_phrase}")
    return ProxyError(
        response.status_code,
        login_error_message(response.status_code),
        details=details,
        extra={
            "status": response.status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )

@router.post("/login")
async def login(request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        credentials = await request.json()

        backend_response = await authenticate_with_retry(
            client,
            f"{base_url}/api/v1/auth/authenticate",
            credentials,
            max_retries=settings.LOGIN_MAX_RETRIES,
            delay=settings.LOGIN_RETRY_DELAY_SECONDS,
            timeout=settings.LOGIN_TIMEOUT_SECONDS,
        )

        if not backend_response.is_success:
            raise login_failure(backend_response)

        data = backend_response.json()
        response = JSONResponse(content=data)

        token = extract_token(data)
        if token:
            set_auth_cookie(response, token)
            logger.info(f"Auth token cookie set, token length {len(token)}")
        else:
            logger.error("No token found in authentication response")

        return response
    except Exception as e:
        logger.error(f"Error during authentication via external API: {e}")
        if isinstance(e, ProxyError):
            raise
        raise ProxyError(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Authentication failed",
            details=str(e) or e.__class__.__name__,
        )

@router.post("/logout", response_model=LogoutResponse)
async def logout():
    try:
        response = JSONResponse(content={"success": True})
        clear_auth_cookie(response)
        logger.info("User logged out")
        return response
    except Exception as e:
        logger.error(f"Error during logout: {e}")
        raise ProxyError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Logout failed")

@router.get("/verify", response_model=VerifyResponse)
async def verify(request: Request):
    """Check the session cookie locally; the backend is not contacted."""
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token:
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "No authentication token found")

    try:
        payload = check_token(token)
    except TokenExpiredError:
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "Token expired")
    except InvalidTokenError as e:
        logger.warning(f"JWT validation error: {e}")
        raise ProxyError(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    sub = payload.get("sub")
    return VerifyResponse(
        jwt=token,
        token=token,
        authenticated=True,
        user=SessionUser(
            id=str(sub or "1"),
            name=str(sub or "User"),
            email=str(payload.get("email") or ""),
        ),
    )
