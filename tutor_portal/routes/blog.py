# tutor_portal/routes/blog.py
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from typing import List
from urllib.parse import quote
import httpx
from tutor_portal.core.backend import (
    NO_CACHE_HEADERS,
    bearer_headers,
    get_backend_client,
    relay_error,
    relay_response,
    request_with_fallback,
    require_base_url,
    upstream_error,
)
from tutor_portal.core.errors import ProxyError
from tutor_portal.core.security import require_request_token
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# Newest name first; the backend has renamed this collection twice
ARTICLE_PATHS = ("/api/articles", "/api/blog", "/api/blogs")

def article_urls(base_url: str, article_id: str = "") -> List[str]:
    suffix = f"/{quote(article_id, safe='')}" if article_id else ""
    return [f"{base_url}{path}{suffix}" for path in ARTICLE_PATHS]

async def read_json_body(request: Request):
    try:
        return await request.json()
    except ValueError:
        raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")

@router.get("")
async def list_articles(client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        try:
            base_url = require_base_url()
        except ProxyError:
            # Without a backend the public blog page renders an empty list
            logger.warning("Backend URL not configured, returning empty blog list")
            return JSONResponse(content=[])

        response = await request_with_fallback(client, "GET", article_urls(base_url), headers=NO_CACHE_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch blogs")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching blogs: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch blogs", e)

@router.post("")
async def create_article(request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        body = await read_json_body(request)
        base_url = require_base_url("Blog creation not configured on this server", status.HTTP_501_NOT_IMPLEMENTED)
        token = require_request_token(request)

        response = await request_with_fallback(
            client, "POST", article_urls(base_url), json=body, headers=bearer_headers(token)
        )
        if not response.is_success:
            raise relay_error(response, "Failed to create blog")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error creating blog: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to create blog", e)

@router.put("/{article_id}")
async def update_article(article_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url("Blog update not configured on this server", status.HTTP_501_NOT_IMPLEMENTED)
        body = await read_json_body(request)
        token = require_request_token(request)

        response = await request_with_fallback(
            client, "PUT", article_urls(base_url, article_id), json=body, headers=bearer_headers(token)
        )
        if not response.is_success:
            raise relay_error(response, "Failed to update blog")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error updating blog {article_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to update blog", e)

@router.delete("/{article_id}")
async def delete_article(article_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url("Blog deletion not configured on this server", status.HTTP_501_NOT_IMPLEMENTED)
        token = require_request_token(request)

        response = await request_with_fallback(
            client, "DELETE", article_urls(base_url, article_id), headers=bearer_headers(token, content_type=None)
        )
        if not response.is_success:
            raise relay_error(response, "Failed to delete blog")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error deleting blog {article_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to delete blog", e)
