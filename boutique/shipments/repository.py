"""
Accès aux données pour la feature 'shipments' (une expédition par commande, order_id unique).
"""
from typing import Dict, Any, Optional
import logging
from postgrest.exceptions import APIError
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

SHIPMENT_COLUMNS = "id, order_id, carrier, tracking_number, address, status, created_at"

# module boutique.shipments.repository
def insert_shipment(*, order_id: str, address: str, carrier: Optional[str], tracking_number: Optional[str]) -> Optional[Dict[str, Any]]:
    """Retourne None si la commande a déjà une expédition (23505)."""
    payload = {
        "order_id": str(order_id),
        "address": address,
        "carrier": carrier,
        "tracking_number": tracking_number,
        "status": "CREATED",
    }
    try:
        res = supabase_client.get_service_supabase().table("shipments").insert(payload).execute()
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            return None
        raise
    rows = res.data or []
    return rows[0] if rows else None

def _find_one(column: str, value: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("shipments")
        .select(SHIPMENT_COLUMNS)
        .eq(column, str(value))
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def find_shipment_by_id(shipment_id: str) -> Optional[Dict[str, Any]]:
    return _find_one("id", shipment_id)

def find_shipment_by_order(order_id: str) -> Optional[Dict[str, Any]]:
    return _find_one("order_id", order_id)

def update_status_if(shipment_id: str, expected: str, new_status: str) -> Optional[Dict[str, Any]]:
    """UPDATE shipments SET status=new WHERE id=? AND status=expected; None si aucune ligne modifiée."""
    res = (
        supabase_client.get_service_supabase()
        .table("shipments")
        .update({"status": new_status})
        .eq("id", str(shipment_id))
        .eq("status", expected)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None
