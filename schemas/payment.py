from typing import List, Optional, Union

from pydantic import BaseModel, Field

from schemas.order import OrderOut


class CheckoutItem(BaseModel):
    name: str = Field(min_length=1)
    price: float = Field(gt=0)
    quantity: int = Field(gt=0)


class CheckoutSessionRequest(BaseModel):
    order_id: Optional[str] = Field(default=None, alias="orderId")
    items: Optional[List[CheckoutItem]] = None
    currency: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    location_id: Optional[str] = Field(default=None, alias="locationId")
    table_number: Optional[Union[str, int]] = Field(default=None, alias="tableNumber")
    special_instructions: Optional[str] = Field(default=None, alias="specialInstructions")

    class Config:
        populate_by_name = True


class CheckoutSessionResponse(BaseModel):
    url: str
    session_id: str


class VerifyPaymentRequest(BaseModel):
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    class Config:
        populate_by_name = True


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    order: OrderOut


class WebhookAck(BaseModel):
    received: bool = True
