# tutor_portal/routes/health.py
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from typing import Any, Dict, List
import httpx
from tutor_portal.core.backend import JSON_HEADERS, get_backend_client, require_base_url
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

PROBE_ENDPOINTS = (
    "/api/v1/health",
    "/api/v1/status",
    "/api/v1/ping",
    "/api/v1/auth/authenticate",
)

def _result(endpoint: str, response: httpx.Response, **extra: Any) -> Dict[str, Any]:
    return {
        "endpoint": endpoint,
        "status": response.status_code,
        "statusText": response.reason_phrase,
        "headers": dict(response.headers),
        "accessible": True,
        **extra,
    }

async def probe_backend(client: httpx.AsyncClient, base_url: str) -> List[Dict[str, Any]]:
    """Hit a handful of well-known endpoints and report which ones answer at all."""
    results = []
    for endpoint in PROBE_ENDPOINTS:
        try:
            response = await client.get(f"{base_url}{endpoint}", headers=JSON_HEADERS)
            results.append(_result(endpoint, response))
        except httpx.RequestError as e:
            results.append({"endpoint": endpoint, "error": str(e) or e.__class__.__name__, "accessible": False})

    endpoint = "/auth/authenticate (POST)"
    try:
        response = await client.post(
            f"{base_url}/api/v1/auth/authenticate",
            json={"username": "test", "password": "test"},
            headers=JSON_HEADERS,
        )
        results.append(_result(
            endpoint,
            response,
            note="Expected to fail authentication, but server should respond",
        ))
    except httpx.RequestError as e:
        results.append({"endpoint": endpoint, "error": str(e) or e.__class__.__name__, "accessible": False})
    return results

@router.get("/backend")
async def backend_health(client: httpx.AsyncClient = Depends(get_backend_client)):
    base_url = require_base_url()
    results = await probe_backend(client, base_url)
    accessible = sum(1 for r in results if r["accessible"])
    logger.info(f"Backend health probe: {accessible}/{len(results)} endpoints reachable")
    return {
        "backendUrl": base_url,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "results": results,
    }
