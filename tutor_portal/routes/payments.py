# tutor_portal/routes/payments.py
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from urllib.parse import quote
import httpx
from tutor_portal.core.backend import (
    JSON_HEADERS,
    get_backend_client,
    json_or_empty,
    require_base_url,
)
from tutor_portal.core.config import settings
from tutor_portal.core.errors import ProxyError
from tutor_portal.models.payment import PaymentConfigResponse
import logging

router = APIRouter()
logger = logging.getLogger(__name__)

# PayPal itself is driven by the backend; these routes only keep its URL and
# credentials off the browser.

def payment_failure(response: httpx.Response, error: str) -> ProxyError:
    data = json_or_empty(response)
    logger.error(f"Payment backend returned {response.status_code} for {response.request.url}")
    return ProxyError(
        response.status_code,
        error,
        details=data,
        extra={"status": response.status_code},
    )

@router.post("/create-order")
async def create_order(request: Request, client: httpx.AsyncClient = Depends(get_backend_client)):
    base_url = require_base_url("API base URL is not configured")
    try:
        try:
            body = await request.json()
        except ValueError:
            raise ProxyError(status.HTTP_400_BAD_REQUEST, "Invalid or missing JSON body")

        response = await client.post(f"{base_url}/api/payments/create-order", json=body, headers=JSON_HEADERS)
        if not response.is_success:
            raise payment_failure(response, "Failed to create order")

        logger.info(f"Payment order created for item {body.get('itemId') if isinstance(body, dict) else None}")
        return JSONResponse(content=json_or_empty(response))
    except Exception as e:
        logger.error(f"Error in create-order proxy: {e}")
        if isinstance(e, ProxyError):
            raise
        raise ProxyError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

@router.get("/order/{order_id}")
async def get_order(order_id: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    base_url = require_base_url("API base URL is not configured")
    try:
        response = await client.get(
            f"{base_url}/api/payments/order/{quote(order_id, safe='')}",
            headers=JSON_HEADERS,
        )
        if not response.is_success:
            raise payment_failure(response, "Failed to get order")
        return JSONResponse(content=json_or_empty(response))
    except Exception as e:
        logger.error(f"Error in get-order proxy: {e}")
        if isinstance(e, ProxyError):
            raise
        raise ProxyError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

@router.post("/capture/{order_id}")
async def capture_order(order_id: str, client: httpx.AsyncClient = Depends(get_backend_client)):
    base_url = require_base_url("API base URL is not configured")
    try:
        response = await client.post(
            f"{base_url}/api/payments/capture/{quote(order_id, safe='')}",
            headers=JSON_HEADERS,
        )
        if not response.is_success:
            data = json_or_empty(response)
            message = "Payment capture failed"
            if isinstance(data, dict):
                message = data.get("message") or data.get("error") or message
            logger.error(f"Capture of order {order_id} failed with {response.status_code}")
            raise ProxyError(response.status_code, message, details=data, extra={"status": response.status_code})

        logger.info(f"Captured payment order {order_id}")
        return JSONResponse(content=json_or_empty(response))
    except Exception as e:
        logger.error(f"Error in capture proxy: {e}")
        if isinstance(e, ProxyError):
            raise
        raise ProxyError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

@router.get("/config", response_model=PaymentConfigResponse)
async def payment_config():
    if not settings.PAYPAL_CLIENT_ID:
        raise ProxyError(
            status.HTTP_501_NOT_IMPLEMENTED,
            "PayPal Client ID is not configured. Please set PAYPAL_CLIENT_ID.",
        )
    return PaymentConfigResponse(clientId=settings.PAYPAL_CLIENT_ID)
