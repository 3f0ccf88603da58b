# tutor_portal/core/backend.py
import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple
import httpx
from fastapi import Response, status
from fastapi.responses import JSONResponse
from tutor_portal.core.config import settings
from tutor_portal.core.errors import ProxyError, config_error, network_error
import logging

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

NO_CACHE_HEADERS = {
    "Content-Type": "application/json",
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

async def get_backend_client():
    async with httpx.AsyncClient(timeout=settings.BACKEND_TIMEOUT_SECONDS) as client:
        yield client

def require_base_url(
    message: str = "Server misconfiguration: API_BASE_URL is not set",
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
) -> str:
    base_url = settings.backend_base_url
    if not base_url:
        raise config_error(message, status_code)
    return base_url

def bearer_headers(token: Optional[str], content_type: Optional[str] = "application/json") -> Dict[str, str]:
    headers = {"Accept": "*/*"}
    if content_type:
        headers["Content-Type"] = content_type
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers

async def authenticate_with_retry(
    client: httpx.AsyncClient,
    url: str,
    payload: Any,
    *,
    max_retries: int,
    delay: float,
    timeout: float,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> httpx.Response:
    """POST credentials, retrying on a backend 500 or a network failure.

    Attempts are bounded at ``max_retries + 1`` with a fixed ``delay`` between
    them. ``timeout`` applies to each attempt on its own. A network failure on
    the last attempt is re-raised; a 500 on the last attempt is returned.
    """
    attempt = 0
    while True:
        try:
            response = await client.post(url, json=payload, headers=JSON_HEADERS, timeout=timeout)
        except httpx.RequestError as e:
            if attempt >= max_retries:
                raise
            logger.warning(
                f"Network error during authentication, retrying... (attempt {attempt + 1}/{max_retries}): {e}"
            )
        else:
            if response.status_code != status.HTTP_500_INTERNAL_SERVER_ERROR or attempt >= max_retries:
                return response
            logger.warning(
                f"Authentication failed with 500, retrying... (attempt {attempt + 1}/{max_retries})"
            )
        attempt += 1
        await sleep(delay)

async def request_with_fallback(
    client: httpx.AsyncClient,
    method: str,
    urls: Sequence[str],
    **kwargs: Any,
) -> httpx.Response:
    """Try each alias in order and return the first response that is not a 404.

    A network error on an alias moves on to the next one. Whatever the last
    alias produces (404 included) is returned, and its network error raised.
    """
    if not urls:
        raise ValueError("request_with_fallback needs at least one URL")

    last_index = len(urls) - 1
    for index, url in enumerate(urls):
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            if index == last_index:
                raise
            logger.warning(f"{method} {url} failed ({e}), trying next alias")
            continue
        if response.status_code != status.HTTP_404_NOT_FOUND or index == last_index:
            return response
        logger.info(f"{method} {url} returned 404, trying next alias")

def is_json(response: httpx.Response) -> bool:
    return "application/json" in response.headers.get("content-type", "")

def json_or_empty(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {}

def read_error_body(response: httpx.Response) -> Tuple[Any, Any]:
    """Return ``(details, backend)`` for a failed backend response."""
    details: Any = f"HTTP {response.status_code} {response.reason_phrase}"
    backend = None
    if is_json(response):
        try:
            return details, response.json()
        except ValueError:
            logger.warning(f"Backend declared JSON but sent {len(response.content)} unparseable bytes")
    if response.text:
        details = response.text
    return details, backend

def relay_error(
    response: httpx.Response,
    error: str,
    *,
    unauthorized: str = "Authentication required",
    forbidden: str = "Access denied - insufficient permissions",
) -> ProxyError:
    details, backend = read_error_body(response)
    logger.error(f"Backend error {response.status_code} for {response.request.method} {response.request.url}")

    message = error
    if response.status_code == status.HTTP_401_UNAUTHORIZED:
        message = unauthorized
    elif response.status_code == status.HTTP_403_FORBIDDEN:
        message = forbidden
    return ProxyError(response.status_code, message, details=details, backend=backend)

def upstream_error(error: str, exc: Exception) -> ProxyError:
    if isinstance(exc, httpx.RequestError):
        return network_error(error, exc)
    return ProxyError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        error,
        details=str(exc) or exc.__class__.__name__,
    )

def relay_response(response: httpx.Response) -> Response:
    if response.status_code == status.HTTP_204_NO_CONTENT:
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    if is_json(response):
        try:
            return JSONResponse(content=response.json(), status_code=response.status_code)
        except ValueError:
            logger.warning(f"Backend declared JSON but sent {len(response.content)} unparseable bytes")

    if response.text:
        return JSONResponse(content={"message": response.text}, status_code=response.status_code)
    return Response(status_code=response.status_code)
