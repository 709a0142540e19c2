# module boutique.shipments.models
from typing import Optional
from pydantic import BaseModel, Field

CREATED = "CREATED"
SHIPPED = "SHIPPED"
DELIVERED = "DELIVERED"

# Machine à états linéaire: CREATED -> SHIPPED -> DELIVERED
TRANSITIONS = {
    CREATED: {SHIPPED},
    SHIPPED: {DELIVERED},
    DELIVERED: set(),
}

class ShipmentRequest(BaseModel):
    order_id: str = Field(min_length=1)
    address: str = Field(min_length=1)
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None

class ShipmentOut(BaseModel):
    id: str
    order_id: str
    carrier: Optional[str] = None
    tracking_number: Optional[str] = None
    address: Optional[str] = None
    status: str
