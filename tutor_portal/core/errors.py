# tutor_portal/core/errors.py
from typing import Any, Dict, Optional
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)

class ProxyError(Exception):
    """Error raised by a proxy route, rendered as the site's JSON error envelope.

    The envelope is ``{"error": ..., "details": ..., "backend": ...}`` plus any
    ``extra`` keys; keys whose value is ``None`` are left out so callers only
    see what the backend actually told us.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        details: Any = None,
        backend: Any = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.details = details
        self.backend = backend
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.details is not None:
            body["details"] = self.details
        if self.backend is not None:
            body["backend"] = self.backend
        for key, value in self.extra.items():
            if value is not None:
                body[key] = value
        return body

def config_error(message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> ProxyError:
    return ProxyError(status_code, message)

def network_error(error: str, exc: Exception) -> ProxyError:
    return ProxyError(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        error,
        details=str(exc) or exc.__class__.__name__,
        extra={"type": "network_error"},
    )

async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.error}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProxyError, proxy_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
