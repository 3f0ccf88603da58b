# tutor_portal/routes/inquiries.py
from fastapi import APIRouter, Depends, Request, status
import json
import httpx
from tutor_portal.core.backend import (
    NO_CACHE_HEADERS,
    bearer_headers,
    get_backend_client,
    relay_error,
    relay_response,
    require_base_url,
    upstream_error,
)
from tutor_portal.core.errors import ProxyError
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("")
async def list_inquiries(page: int = 0, size: int = 10, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        # The backend reads Spring-style paging from a single JSON query parameter
        pageable = json.dumps({"page": page, "size": size}, separators=(",", ":"))
        response = await client.get(
            f"{base_url}/api/inquiries",
            params={"pageable": pageable},
            headers=NO_CACHE_HEADERS,
        )
        if not response.is_success:
            raise relay_error(response, "Failed to fetch inquiries")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching inquiries: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch inquiries", e)

@router.post("")
async def create_inquiry(request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        try:
            body = await request.json()
        except ValueError:
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")

        response = await client.post(
            f"{base_url}/api/inquiries",
            json=body,
            headers=bearer_headers(None),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to create inquiry")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error creating inquiry: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to create inquiry", e)
