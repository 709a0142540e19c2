"""Couche service des paniers.
Rôles:
- Lecture « snapshot » d’un panier: lignes + produits courants résolus en une lecture.
- Mutations (ajout, quantité, retrait, vidage, suppression) avec recalcul du total persisté.
- Contrôle de propriété: un panier n’est manipulable que par son propriétaire (ou un admin).
"""
from typing import Any, Dict, Optional
import logging

from . import repository
from boutique.catalog import repository as catalog_repository
from boutique.errors import NotFound, BadRequest, Forbidden
from boutique.utils.money import to_decimal, format_amount
from boutique.utils.security import is_admin

logger = logging.getLogger(__name__)

def _normalize_product(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not row:
        return None
    return {
        "id": str(row.get("id")),
        "name": row.get("name") or "",
        "description": row.get("description") or "",
        "price": to_decimal(row.get("price")),
        "image_url": row.get("image_url"),
    }

def _normalize_item(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id")),
        "product_id": str(row.get("product_id")),
        "quantity": int(row.get("quantity") or 0),
        "unit_price": to_decimal(row.get("unit_price")),
        "line_total": to_decimal(row.get("line_total")),
        "product": _normalize_product(row.get("products")),
        "created_at": row.get("created_at") or "",
    }

def get_cart_snapshot(cart_id: str) -> Dict[str, Any]:
    """
    Retourne {id, user_id, total, items[]} avec, pour chaque ligne, le produit joint.
    - Lève NotFound si le panier n’existe pas; un panier vide est un retour valide.
    - Les lignes sont rendues dans leur ordre d’insertion.
    """
    row = repository.get_cart_with_items(cart_id)
    if not row:
        raise NotFound("Panier introuvable")
    items = [_normalize_item(r) for r in (row.get("cart_items") or [])]
    items.sort(key=lambda it: it["created_at"])
    return {
        "id": str(row.get("id")),
        "user_id": str(row["user_id"]) if row.get("user_id") else None,
        "total": to_decimal(row.get("total")),
        "items": items,
    }

def assert_cart_access(cart: Dict[str, Any], user: Optional[Dict[str, Any]]) -> None:
    if user is None or is_admin(user):
        return
    if cart.get("user_id") != str(user.get("id")):
        raise Forbidden("Ce panier appartient à un autre utilisateur")

def get_cart(cart_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    cart = get_cart_snapshot(cart_id)
    assert_cart_access(cart, user)
    return cart

def create_cart(user: Dict[str, Any]) -> Dict[str, Any]:
    """Crée un panier vide rattaché à l’utilisateur (réutilise le panier existant s’il y en a un)."""
    existing = repository.find_cart_by_user(user["id"])
    if existing:
        return get_cart_snapshot(existing["id"])
    row = repository.insert_cart(user["id"])
    if not row:
        raise RuntimeError("Impossible de créer le panier")
    logger.info("carts.create user_id=%s cart_id=%s", user["id"], row.get("id"))
    return get_cart_snapshot(row["id"])

def get_my_cart(user: Dict[str, Any]) -> Dict[str, Any]:
    existing = repository.find_cart_by_user(user["id"])
    if not existing:
        raise NotFound("Aucun panier pour cet utilisateur")
    return get_cart_snapshot(existing["id"])

def recompute_total(cart_id: str) -> None:
    """Recalcule total = Σ line_total et le persiste."""
    rows = repository.list_item_rows(cart_id)
    total = sum((to_decimal(r.get("line_total")) for r in rows), to_decimal(0))
    repository.update_cart_total(cart_id, format_amount(total))

def _find_line(cart: Dict[str, Any], product_id: str) -> Optional[Dict[str, Any]]:
    for item in cart["items"]:
        if item["product_id"] == str(product_id):
            return item
    return None

def add_item(cart_id: str, product_id: str, quantity: int, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Ajoute un produit au panier.
    - Une ligne existante pour le même produit cumule les quantités.
    - Le prix unitaire est rafraîchi depuis le catalogue et le total de ligne recalculé.
    """
    if quantity < 1:
        raise BadRequest("La quantité doit être au moins 1")
    cart = get_cart(cart_id, user)
    product = catalog_repository.get_product(product_id)
    if not product:
        raise NotFound("Produit introuvable")
    unit_price = to_decimal(product.get("price"))

    line = _find_line(cart, product_id)
    if line:
        new_qty = line["quantity"] + quantity
        repository.update_item(
            line["id"],
            quantity=new_qty,
            unit_price=format_amount(unit_price),
            line_total=format_amount(unit_price * new_qty),
        )
    else:
        repository.insert_item(
            cart_id=cart["id"],
            product_id=str(product_id),
            quantity=quantity,
            unit_price=format_amount(unit_price),
            line_total=format_amount(unit_price * quantity),
        )
    recompute_total(cart["id"])
    return get_cart_snapshot(cart["id"])

def update_item(cart_id: str, product_id: str, quantity: int, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    if quantity < 1:
        raise BadRequest("La quantité doit être au moins 1")
    cart = get_cart(cart_id, user)
    line = _find_line(cart, product_id)
    if not line:
        raise NotFound("Article absent du panier")
    product = line.get("product") or {}
    unit_price = product.get("price", line["unit_price"])
    repository.update_item(
        line["id"],
        quantity=quantity,
        unit_price=format_amount(unit_price),
        line_total=format_amount(unit_price * quantity),
    )
    recompute_total(cart["id"])
    return get_cart_snapshot(cart["id"])

def remove_item(cart_id: str, product_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    cart = get_cart(cart_id, user)
    line = _find_line(cart, product_id)
    if not line:
        raise NotFound("Article absent du panier")
    repository.delete_item(line["id"])
    recompute_total(cart["id"])
    return get_cart_snapshot(cart["id"])

def clear_cart(cart_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    cart = get_cart(cart_id, user)
    if cart["items"]:
        deleted = repository.delete_items(cart["id"])
        logger.info("carts.clear cart_id=%s deleted=%s", cart["id"], deleted)
    repository.update_cart_total(cart["id"], format_amount(0))
    return get_cart_snapshot(cart["id"])

def delete_cart(cart_id: str, user: Optional[Dict[str, Any]] = None) -> None:
    cart = get_cart(cart_id, user)
    repository.delete_cart(cart["id"])
    logger.info("carts.delete cart_id=%s items=%s", cart["id"], len(cart["items"]))

def to_cart_dto(cart: Dict[str, Any]) -> Dict[str, Any]:
    """Représentation JSON: montants en chaînes à deux décimales."""
    return {
        "id": cart["id"],
        "user_id": cart.get("user_id"),
        "total": format_amount(cart["total"]),
        "items": [
            {
                "product_id": it["product_id"],
                "product_name": (it.get("product") or {}).get("name"),
                "quantity": it["quantity"],
                "unit_price": format_amount(it["unit_price"]),
                "line_total": format_amount(it["line_total"]),
            }
            for it in cart["items"]
        ],
    }
