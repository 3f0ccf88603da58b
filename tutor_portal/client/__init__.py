from .session import AuthSession, SessionState
from .checkout import CheckoutCache, CheckoutError, CheckoutFlow, CheckoutValidationError
from .storage import JsonFileStorage, MemoryStorage

__all__ = (
    "AuthSession",
    "SessionState",
    "CheckoutCache",
    "CheckoutError",
    "CheckoutFlow",
    "CheckoutValidationError",
    "JsonFileStorage",
    "MemoryStorage",
)
