# tutor_portal/routes/courses.py
from fastapi import APIRouter, Depends, Request, status
from starlette.datastructures import UploadFile
from typing import Any, Dict, Tuple
from urllib.parse import quote, urljoin
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
from tutor_portal.core.security import require_fresh_token, require_request_token
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# Metadata fields the upload endpoint takes as query parameters, with defaults
COURSE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("title", ""),
    ("description", ""),
    ("accent", ""),
    ("level", ""),
    ("duration", ""),
    ("price", ""),
    ("students", ""),
    ("rating", "5"),
    ("image", ""),
    ("order", "1"),
)

def course_params(source: Any) -> Dict[str, str]:
    params = {}
    for field, default in COURSE_FIELDS:
        value = source.get(field)
        params[field] = default if value is None else str(value)
    return params

async def thumbnail_from_form(request: Request) -> Tuple[Dict[str, str], Tuple[str, bytes, str]]:
    form = await request.form()
    upload = form.get("thumbnailFile")
    if not isinstance(upload, UploadFile):
        raise ProxyError(status.HTTP_400_BAD_REQUEST, "thumbnailFile is required")
    content = await upload.read()
    return course_params(form), (
        upload.filename or "thumbnail",
        content,
        upload.content_type or "application/octet-stream",
    )

async def thumbnail_from_json(request: Request, client: httpx.AsyncClient) -> Tuple[Dict[str, str], Tuple[str, bytes, str]]:
    """Older dashboards send JSON with a thumbnail URL; fetch it and re-upload the bytes."""
    body = await request.json()
    if not isinstance(body, dict):
        body = {}
    logger.info(f"Course creation JSON body keys: {list(body.keys())}")

    thumbnail_url = str(body.get("thumbnail") or body.get("image") or "")
    if not thumbnail_url:
        raise ProxyError(
            status.HTTP_400_BAD_REQUEST,
            "thumbnail (URL) is required in request body until UI supports file upload",
        )

    try:
        resolved_url = thumbnail_url if thumbnail_url.startswith("http") else urljoin(str(request.base_url), thumbnail_url)
        thumb_response = await client.get(resolved_url)
        if not thumb_response.is_success:
            raise ValueError(
                f"Failed to fetch thumbnail from provided URL ({thumb_response.status_code} {thumb_response.reason_phrase})"
            )
    except (httpx.RequestError, ValueError) as e:
        logger.error(f"Thumbnail fetch failed: {e}")
        raise ProxyError(
            status.HTTP_400_BAD_REQUEST,
            "Failed to retrieve thumbnail image from provided URL",
            details=str(e),
        )

    filename = thumbnail_url.split("?")[0].split("/")[-1] or "thumbnail"
    content_type = thumb_response.headers.get("content-type", "application/octet-stream")
    return course_params(body), (filename, thumb_response.content, content_type)

@router.get("")
async def list_courses(client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/v2/courses", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch courses from external API")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching courses from external API: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch courses from external API", e)

@router.post("")
async def create_course(request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        # Checked before anything else so a request without a usable token never reaches the backend
        token = require_fresh_token(request)
        base_url = require_base_url()

        content_type = request.headers.get("content-type", "").lower()
        if "multipart/form-data" in content_type:
            params, thumbnail = await thumbnail_from_form(request)
        else:
            params, thumbnail = await thumbnail_from_json(request, client)

        response = await client.post(
            f"{base_url}/api/v2/courses/upload",
            params=params,
            files={"thumbnailFile": thumbnail},
            headers={"Authorization": f"Bearer {token}"},
            timeout=settings.UPLOAD_TIMEOUT_SECONDS,
        )
        if not response.is_success:
            raise relay_error(
                response,
                "Failed to create course",
                unauthorized="Authentication required - please log in again",
                forbidden="Access denied - insufficient permissions to create courses",
            )
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error creating course via external API: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to create course via external API", e)

@router.get("/search")
async def search_courses(title: str = "", client: httpx.AsyncClient = Depends(get_backend_client)):
    if not title:
        raise ProxyError(status.HTTP_400_BAD_REQUEST, "Title parameter is required")
    try:
        base_url = require_base_url()
        response = await client.get(
            f"{base_url}/api/v1/courses/search",
            params={"title": title},
            headers=JSON_HEADERS,
        )
        if not response.is_success:
            raise relay_error(response, "Failed to search courses")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error searching courses: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to search courses", e)

@router.get("/level/{level}")
async def courses_by_level(level: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/v1/courses/level/{quote(level, safe='')}", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch courses by level")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching courses by level: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch courses by level", e)

@router.get("/accent/{accent}")
async def courses_by_accent(accent: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/v2/courses/accent/{quote(accent, safe='')}", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch courses by accent")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching courses by accent: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch courses by accent", e)

@router.get("/{course_id}")
async def get_course(course_id: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        base_url = require_base_url()
        response = await client.get(f"{base_url}/api/v1/courses/{quote(course_id, safe='')}", headers=JSON_HEADERS)
        if not response.is_success:
            raise relay_error(response, "Failed to fetch course via external API")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error fetching course {course_id} via external API: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to fetch course via external API", e)

@router.put("/{course_id}")
async def update_course(course_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        token = require_request_token(request)
        base_url = require_base_url()
        body = await request.json()
        response = await client.put(
            f"{base_url}/api/v1/courses/{quote(course_id, safe='')}",
            json=body,
            headers=bearer_headers(token),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to update course via external API")
        return relay_response(response)
    except Exception as e:
        logger.error(f"Error updating course {course_id} via external API: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to update course via external API", e)

@router.delete("/{course_id}")
async def delete_course(course_id: str, request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    try:
        token = require_request_token(request)
        base_url = require_base_url()
        response = await client.delete(
            f"{base_url}/api/v1/courses/{quote(course_id, safe='')}",
            headers=bearer_headers(token),
        )
        if not response.is_success:
            raise relay_error(response, "Failed to delete course via external API")
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting course {course_id} via external API: {e}")
        if isinstance(e, ProxyError):
            raise
        raise upstream_error("Failed to delete course via external API", e)
