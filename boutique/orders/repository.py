"""
Accès aux données pour la feature 'orders' (tables orders / order_items, RPC place_order).
"""
from typing import Dict, Any, List, Optional
import logging
from postgrest.exceptions import APIError
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ORDER_WITH_ITEMS = "id, user_id, status, total_amount, created_at, order_items(product_id, quantity, price)"

class CartChanged(Exception):
    """Le panier ne correspond plus aux lignes calculées (SQLSTATE 40001 de place_order)."""

# module boutique.orders.repository
def place_order(*, user_id: str, cart_id: Optional[str], total: str, items: List[Dict[str, Any]]) -> Optional[str]:
    """
    Appelle la fonction Postgres place_order dans une seule transaction:
    - insère la commande (PENDING) et ses lignes;
    - si p_cart_id est fourni, verrouille le panier, vérifie qu’il contient exactement
      ces lignes puis les supprime et recalcule son total.
    Toute erreur annule l’ensemble (rollback côté base). Un panier modifié depuis sa
    lecture lève CartChanged; les autres erreurs remontent telles quelles.
    Retourne l’id de la commande créée.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .rpc("place_order", {
                "p_user_id": user_id,
                "p_cart_id": cart_id,
                "p_total": total,
                "p_items": items,
            })
            .execute()
        )
    except APIError as e:
        if supabase_client.is_serialization_failure(e):
            logger.info("orders.repository.place_order cart changed cart_id=%s", cart_id)
            raise CartChanged(str(cart_id)) from e
        raise
    data = res.data
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = data.get("place_order") or data.get("id")
    return str(data) if data else None

def find_order_by_id(order_id: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .select(ORDER_WITH_ITEMS)
        .eq("id", str(order_id))
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def find_orders_by_user(user_id: str, limit: int = 50) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("orders")
            .select(ORDER_WITH_ITEMS)
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("orders.repository.find_orders_by_user failed user_id=%s", user_id)
        return []

def _transition_if(order_id: str, expected: str, new_status: str) -> bool:
    """UPDATE orders SET status=new WHERE id=? AND status=expected; True si une ligne a changé."""
    res = (
        supabase_client.get_service_supabase()
        .table("orders")
        .update({"status": new_status})
        .eq("id", str(order_id))
        .eq("status", expected)
        .execute()
    )
    return bool(res.data)

def confirm_if_pending(order_id: str) -> bool:
    return _transition_if(order_id, "PENDING", "CONFIRMED")

def cancel_if_pending(order_id: str) -> bool:
    return _transition_if(order_id, "PENDING", "CANCELLED")
