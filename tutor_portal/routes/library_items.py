# tutor_portal/routes/library_items.py
from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
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
from tutor_portal.core.config import settings
from tutor_portal.core.errors import ProxyError
from tutor_portal.core.security import require_request_token
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

METADATA_FIELDS = ("title", "description", "category", "fileType", "accent", "level", "amount")
FILE_FIELDS = ("pdfFile", "thumbnailFile")

@router.get("")
async def list_library_items(client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/v2/library-items", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch library items")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching library items: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch library items", e)

@router.get("/{item_id}")
async def get_library_item(item_id: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/v2/library-items/{quote(item_id, safe='')}", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch library item")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching library item {item_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch library item", e)

@router.put("/{item_id}")
async def update_library_item(item_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    """Metadata goes in the query string, the PDF and thumbnail as multipart parts."""
    try:
        token = require_request_token(request)
        base_url = require_base_url()
        form = await request.form()

        params = {field: str(form.get(field)) for field in METADATA_FIELDS if form.get(field)}
        files = {}
        for field in FILE_FIELDS:
            upload = form.get(field)
            if isinstance(upload, UploadFile):
                files[field] = (
                    upload.filename or field,
                    await upload.read(),
                    upload.content_type or "application/octet-stream",
                )

        # Metadata-only edits are sent without a body
        upload = {"files": files} if files else {}
        response = await client.put(
            f"{base_url}/api/v2/library-items/{quote(item_id, safe='')}/upload",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
            timeout=settings.UPLOAD_TIMEOUT_SECONDS,
            **upload,
        )
        if not response.is_success:
            raise relay_error(response, "Failed to update library item")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error updating library item {item_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to update library item", e)

@router.delete("/{item_id}")
async def delete_library_item(item_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        token = require_request_token(request)
        base_url = require_base_url()
        response = await client.delete(
            f"{base_url}/api/v2/library-items/{quote(item_id, safe='')}",
            headers=bearer_headers(token),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to delete library item")
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting library item {item_id}: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to delete library item", e)
