# module boutique.orders.models
from pydantic import BaseModel

PENDING = "PENDING"
CONFIRMED = "CONFIRMED"
CANCELLED = "CANCELLED"

ORDER_STATUSES = (PENDING, CONFIRMED, CANCELLED)

class OrderItemOut(BaseModel):
    product_id: str
    quantity: int
    price: str

class OrderOut(BaseModel):
    id: str
    user_id: str | None = None
    status: str
    total: str
    created_at: str | None = None
    items: list[OrderItemOut] = []
