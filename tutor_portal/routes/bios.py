# tutor_portal/routes/bios.py
from fastapi import APIRouter, Depends, Request, status
import time
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
from tutor_portal.core.security import require_request_token
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# The backend keeps exactly one bio record
BIO_ID = 1

@router.get("")
async def get_bios(client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(
            f"{base_url}/api/bios",
            params={"_t": int(time.time() * 1000)},
            headers=NO_CACHE_HEADERS,
        )
        if not response.is_success:
            raise relay_error(response, "Failed to fetch bios")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching bios: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch bios", e)

@router.put("")
@router.put("/{bio_id}")
async def update_bio(request: Request, bio_id: str = str(BIO_ID), client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        try:
            body = await request.json()
        except ValueError:
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")
        if not isinstance(body, dict):
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")

        token = require_request_token(request)

        if bio_id != str(BIO_ID):
            logger.info(f"Bio update requested for id {bio_id}, forwarding to id {BIO_ID}")
        forward_body = {**body, "id": BIO_ID}

        response = await client.put(
            f"{base_url}/api/bios/{BIO_ID}",
            json=forward_body,
            headers=bearer_headers(token),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to update bio data")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error updating bio data: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to update bio data", e)
