# tutor_portal/client/checkout.py
import json
import math
import re
import time
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import quote
import httpx
from pydantic import EmailStr, TypeAdapter, ValidationError
from tutor_portal.client.storage import MemoryStorage, Storage
from tutor_portal.core.backend import json_or_empty
from tutor_portal.models.payment import CheckoutOrder
import logging

logger = logging.getLogger(__name__)

PRICE_FLOOR = 0.01
CHECKOUT_CACHE_KEY = "checkout_session"
CHECKOUT_CACHE_TTL_SECONDS = 60 * 60

_email_adapter = TypeAdapter(EmailStr)

class CheckoutError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

class CheckoutValidationError(CheckoutError):
    pass

def parse_price(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = re.sub(r"[^0-9.]", "", str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return None
    return number if math.isfinite(number) else None

def minimum_amount(list_price: Any) -> float:
    """Lowest payment accepted for an item.

    Priced items need at least their list price (and never less than one
    cent); free items can be taken for nothing.
    """
    price = parse_price(list_price)
    if price is None or price <= 0:
        return 0.0
    return max(PRICE_FLOOR, round(price, 2))

def validate_amount(amount: Any, list_price: Any) -> float:
    if isinstance(amount, bool):
        raise CheckoutValidationError("Please enter a valid amount")
    try:
        number = float(amount)
    except (TypeError, ValueError):
        raise CheckoutValidationError("Please enter a valid amount")
    if not math.isfinite(number):
        raise CheckoutValidationError("Please enter a valid amount")

    minimum = minimum_amount(list_price)
    if number < minimum:
        raise CheckoutValidationError(f"Amount must be at least ${minimum:.2f}")
    return number

def validate_email(email: Optional[str]) -> str:
    if not email:
        raise CheckoutValidationError("Please enter a valid email")
    try:
        return str(_email_adapter.validate_python(email))
    except ValidationError:
        raise CheckoutValidationError("Please enter a valid email")

class CheckoutCache:
    """The item being bought, kept client side so the price never comes from the URL."""

    def __init__(
        self,
        storage: Optional[Storage] = None,
        clock: Callable[[], float] = time.time,
        ttl_seconds: float = CHECKOUT_CACHE_TTL_SECONDS,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.clock = clock
        self.ttl_seconds = ttl_seconds

    def save(self, item_id: Union[int, str], title: str, amount: float, thumbnail: Optional[str] = None) -> Dict[str, Any]:
        entry = {
            "itemId": str(item_id),
            "title": title,
            "amount": amount,
            "thumbnail": thumbnail,
            "timestamp": self.clock(),
        }
        self.storage.set_item(CHECKOUT_CACHE_KEY, json.dumps(entry))
        return entry

    def load(self, item_id: Union[int, str]) -> Optional[Dict[str, Any]]:
        raw = self.storage.get_item(CHECKOUT_CACHE_KEY)
        if not raw:
            return None
        try:
            entry = json.loads(raw)
        except ValueError:
            self.clear()
            return None

        if not isinstance(entry, dict) or entry.get("itemId") != str(item_id):
            self.clear()
            return None

        try:
            age = self.clock() - float(entry.get("timestamp", 0))
        except (TypeError, ValueError):
            age = math.inf
        if age > self.ttl_seconds:
            logger.info(f"Discarding checkout cache for item {item_id}, {age:.0f}s old")
            self.clear()
            return None
        return entry

    def clear(self) -> None:
        self.storage.remove_item(CHECKOUT_CACHE_KEY)

class CheckoutFlow:
    """Browser side of the PayPal checkout, talking to this site's payment proxy."""

    def __init__(self, client: httpx.AsyncClient, cache: Optional[CheckoutCache] = None):
        self.client = client
        self.cache = cache if cache is not None else CheckoutCache()

    def prepare_order(
        self,
        *,
        item_id: Optional[Union[int, str]],
        item_name: str,
        item_type: str,
        list_price: Any,
        amount: Any,
        email: Optional[str],
        origin: str,
    ) -> CheckoutOrder:
        try:
            item = int(item_id)
        except (TypeError, ValueError):
            raise CheckoutValidationError("Missing item id")
        customer_email = validate_email(email)
        value = validate_amount(amount, list_price)
        origin = origin.rstrip("/")
        return CheckoutOrder(
            itemId=item,
            itemName=item_name,
            itemType=item_type,
            amount=value,
            currency="USD",
            returnUrl=f"{origin}/checkout/success",
            cancelUrl=f"{origin}/checkout/cancel",
            customerEmail=customer_email,
            description=f"Purchase of {item_name}",
            category=item_type,
            fileType=item_type,
        )

    async def create_order(self, order: CheckoutOrder) -> str:
        try:
            response = await self.client.post("/api/payments/create-order", json=order.to_backend())
        except httpx.HTTPError as e:
            logger.error(f"Create-order request failed: {e}")
            raise CheckoutError("Failed to create PayPal order")
        data = json_or_empty(response)
        if not response.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            raise CheckoutError(message or "Failed to create PayPal order", response.status_code)

        order_id = None
        if isinstance(data, dict):
            result = data.get("result")
            order_id = data.get("orderId") or data.get("id") or (result.get("id") if isinstance(result, dict) else None)
        if not order_id:
            raise CheckoutError("Payment backend did not return an order id", response.status_code)
        return str(order_id)

    async def capture(self, order_id: Optional[str]) -> Dict[str, Any]:
        if not order_id:
            raise CheckoutError("Missing order ID after approval")

        try:
            response = await self.client.post(f"/api/payments/capture/{quote(order_id, safe='')}")
        except httpx.HTTPError as e:
            logger.error(f"Capture request for {order_id} failed: {e}")
            raise CheckoutError("Payment capture failed")

        payload = json_or_empty(response)
        if not response.is_success:
            # Cache stays so the buyer can retry without re-entering anything
            message = payload.get("error") if isinstance(payload, dict) else None
            raise CheckoutError(message or "Payment capture failed", response.status_code)

        self.cache.clear()
        return payload

    async def lookup(self, order_id: str) -> Dict[str, Any]:
        response = await self.client.get(f"/api/payments/order/{quote(order_id, safe='')}")
        data = json_or_empty(response)
        if not response.is_success:
            message = data.get("error") if isinstance(data, dict) else None
            raise CheckoutError(message or "Failed to get order", response.status_code)
        return data
