# tutor_portal/routes/testimonials.py
from fastapi import APIRouter, Depends, Request, status
from urllib.parse import quote
import httpx
from tutor_portal.core.backend import (
    JSON_HEADERS,
    bearer_headers,
    get_backend_client,
    relay_error,
    relay_response,
    require_base_url,
    upstream_error,
)
from tutor_portal.core.errors import ProxyError
from tutor_portal.core.security import get_request_token, require_request_token
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("")
async def list_testimonials(client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/testimonials", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch testimonials")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching testimonials: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch testimonials", e)

@router.post("")
async def create_testimonial(request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    """Visitors submit reviews without logging in; every new review waits for moderation."""
    try:
        base_url = require_base_url()
        try:
            body = await request.json()
        except ValueError:
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")
        if not isinstance(body, dict):
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")

        forward_body = {**body, "approved": False}

        response = await client.post(
            f"{base_url}/api/testimonials",
            json=forward_body,
            headers=bearer_headers(get_request_token(request)),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to create testimonial")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error creating testimonial: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to create testimonial", e)

@router.get("/{testimonial_id}")
async def get_testimonial(testimonial_id: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/testimonials/{quote(testimonial_id, safe='')}", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch testimonial")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching testimonial {testimonial_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch testimonial", e)

@router.put("/{testimonial_id}")
async def update_testimonial(testimonial_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    """Dashboard edits and approve/disapprove toggles."""
    try:
        token = require_request_token(request)
        base_url = require_base_url()
        try:
            body = await request.json()
        except ValueError:
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")

        response = await client.put(
            f"{base_url}/api/testimonials/{quote(testimonial_id, safe='')}",
            json=body,
            headers=bearer_headers(token),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to update testimonial")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error updating testimonial {testimonial_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to update testimonial", e)

@router.delete("/{testimonial_id}")
async def delete_testimonial(testimonial_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        token = require_request_token(request)
        base_url = require_base_url()
        response = await client.delete(
            f"{base_url}/api/testimonials/{quote(testimonial_id, safe='')}",
            headers=bearer_headers(token),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to delete testimonial")
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting testimonial {testimonial_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to delete testimonial", e)
