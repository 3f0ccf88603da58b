# tutor_portal/models/payment.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional

class CheckoutOrder(BaseModel):
    """Order intent sent to create-order; field names follow the backend's JSON."""
    model_config = ConfigDict(populate_by_name=True)

    item_id: Optional[int] = Field(None, alias="itemId")
    item_name: str = Field(..., alias="itemName")
    item_type: str = Field("document", alias="itemType")
    amount: float
    currency: str = "USD"
    return_url: Optional[str] = Field(None, alias="returnUrl")
    cancel_url: Optional[str] = Field(None, alias="cancelUrl")
    customer_email: EmailStr = Field(..., alias="customerEmail")
    description: Optional[str] = None
    category: Optional[str] = None
    file_type: Optional[str] = Field(None, alias="fileType")

    def to_backend(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)

class PaymentConfigResponse(BaseModel):
    clientId: str
    currency: str = "USD"
