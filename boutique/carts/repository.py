"""
Accès aux données pour la feature 'carts' (tables carts / cart_items).
"""
from typing import Dict, Any, List, Optional
import logging
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

CART_WITH_ITEMS = (
    "id, user_id, total, created_at, "
    "cart_items(id, product_id, quantity, unit_price, line_total, created_at, "
    "products(id, name, description, price, image_url))"
)

# module boutique.carts.repository
def get_cart_with_items(cart_id: str) -> Optional[Dict[str, Any]]:
    """
    Lit un panier, ses lignes et les produits joints en une seule requête (embedding PostgREST).
    - Retourne None si le panier n’existe pas.
    """
    res = (
        supabase_client.get_service_supabase()
        .table("carts")
        .select(CART_WITH_ITEMS)
        .eq("id", str(cart_id))
        .limit(1)
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def find_cart_by_user(user_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .select("id")
            .eq("user_id", str(user_id))
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("carts.repository.find_cart_by_user failed user_id=%s", user_id)
        return None

def insert_cart(user_id: Optional[str]) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("carts")
        .insert({"user_id": user_id, "total": "0.00"})
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def insert_item(*, cart_id: str, product_id: str, quantity: int, unit_price: str, line_total: str) -> Optional[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .insert({
            "cart_id": str(cart_id),
            "product_id": str(product_id),
            "quantity": quantity,
            "unit_price": unit_price,
            "line_total": line_total,
        })
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def update_item(item_id: str, *, quantity: int, unit_price: str, line_total: str) -> bool:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .update({"quantity": quantity, "unit_price": unit_price, "line_total": line_total})
        .eq("id", str(item_id))
        .execute()
    )
    return bool(res.data)

def delete_item(item_id: str) -> bool:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .delete()
        .eq("id", str(item_id))
        .execute()
    )
    return bool(res.data)

def delete_items(cart_id: str) -> int:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .delete()
        .eq("cart_id", str(cart_id))
        .execute()
    )
    return len(res.data or [])

def update_cart_total(cart_id: str, total: str) -> None:
    (
        supabase_client.get_service_supabase()
        .table("carts")
        .update({"total": total})
        .eq("id", str(cart_id))
        .execute()
    )

def delete_cart(cart_id: str) -> bool:
    """
    Supprime un panier (les lignes suivent via ON DELETE CASCADE).
    - Tolérant: un panier déjà supprimé n’est pas une erreur, retourne False.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("carts")
            .delete()
            .eq("id", str(cart_id))
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("carts.repository.delete_cart failed cart_id=%s", cart_id)
        return False

def list_item_rows(cart_id: str) -> List[Dict[str, Any]]:
    res = (
        supabase_client.get_service_supabase()
        .table("cart_items")
        .select("id, product_id, quantity, unit_price, line_total")
        .eq("cart_id", str(cart_id))
        .order("created_at")
        .execute()
    )
    return res.data or []
