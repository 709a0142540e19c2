# module boutique.payments.models
from typing import Optional
from pydantic import BaseModel, Field

class PaymentRequest(BaseModel):
    order_id: str = Field(min_length=1)
    method: str = "MOCK"

class PaymentOut(BaseModel):
    id: str
    order_id: str
    status: str
    provider: Optional[str] = None
    reference: Optional[str] = None
    amount: str

class CheckoutSessionRequest(BaseModel):
    cart_id: str = Field(min_length=1)

class CheckoutSessionOut(BaseModel):
    session_id: Optional[str] = None
    session_url: Optional[str] = None
    order_id: Optional[str] = None
    status: str
    payment_status: Optional[str] = None
