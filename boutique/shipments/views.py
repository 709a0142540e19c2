# module boutique.shipments.views
from fastapi import APIRouter, Depends
from typing import Dict, Any

from boutique.utils.security import require_user, require_admin
from boutique.shipments import service as shipments_service
from boutique.shipments.models import ShipmentRequest, ShipmentOut

router = APIRouter(prefix="/api/v1/shipments", tags=["Shipments API"])

@router.post("", status_code=201, response_model=ShipmentOut)
def api_create_shipment(body: ShipmentRequest, user: Dict[str, Any] = Depends(require_user)):
    return shipments_service.create_shipment(body.order_id, body.address, body.carrier, body.tracking_number, user)

@router.get("/order/{order_id}", response_model=ShipmentOut)
def api_get_shipment_by_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return shipments_service.get_shipment_by_order(order_id, user)

@router.get("/{shipment_id}", response_model=ShipmentOut)
def api_get_shipment(shipment_id: str, user: Dict[str, Any] = Depends(require_user)):
    return shipments_service.get_shipment(shipment_id, user)

@router.put("/{shipment_id}/status", response_model=ShipmentOut)
def api_update_shipment_status(shipment_id: str, status: str, admin: Dict[str, Any] = Depends(require_admin)):
    """Réservé aux administrateurs. 409 si la transition est interdite."""
    return shipments_service.update_status(shipment_id, status)
