"""Couche service des commandes.
Rôles:
- Assembler une commande immuable à partir d’un snapshot de panier (prix courants du catalogue).
- Checkout: création de la commande et vidage du panier dans une même transaction (RPC place_order).
- Lecture, listing et annulation (PENDING -> CANCELLED conditionnelle).
Note: aucun contrôle ni décrément de stock n’est fait ici; l’inventaire est hors périmètre.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import logging

from . import repository
from .models import PENDING, CANCELLED
from boutique.carts import service as carts_service
from boutique.errors import NotFound, BadRequest, Conflict, Forbidden, InvalidTransition
from boutique.utils.money import to_decimal, format_amount
from boutique.utils.security import is_admin

logger = logging.getLogger(__name__)

def assemble_order_lines(cart: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Decimal]:
    """
    Calcule les lignes de commande et le total exact (Decimal).
    - Le prix retenu est le prix courant du produit, pas le prix unitaire stocké dans le panier.
    - Une ligne dont le produit n’existe plus lève NotFound.
    """
    lines: List[Dict[str, Any]] = []
    total = Decimal("0")
    for item in cart.get("items") or []:
        product = item.get("product")
        if not product:
            raise NotFound(f"Produit introuvable: {item.get('product_id')}")
        price = to_decimal(product.get("price"))
        qty = int(item["quantity"])
        lines.append({"product_id": str(product["id"]), "quantity": qty, "price": price})
        total += price * qty
    return lines, total

def _normalize_order(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id")),
        "user_id": str(row["user_id"]) if row.get("user_id") else None,
        "status": row.get("status") or PENDING,
        "total": to_decimal(row.get("total_amount")),
        "created_at": row.get("created_at"),
        "items": [
            {
                "product_id": str(it.get("product_id")),
                "quantity": int(it.get("quantity") or 0),
                "price": to_decimal(it.get("price")),
            }
            for it in (row.get("order_items") or [])
        ],
    }

def find_order(order_id: str) -> Dict[str, Any]:
    row = repository.find_order_by_id(order_id)
    if not row:
        raise NotFound("Commande introuvable")
    return _normalize_order(row)

def place_order(user: Dict[str, Any], cart: Dict[str, Any], clear_cart: bool = False) -> Dict[str, Any]:
    """
    Persiste une commande PENDING à partir du panier.
    - clear_cart=False: aucun effet sur le panier.
    - clear_cart=True: la même transaction vide le panier (utilisé par checkout).
      Conflict si le panier a changé depuis le snapshot: rien n’est écrit.
    """
    lines, total = assemble_order_lines(cart)
    try:
        order_id = repository.place_order(
            user_id=str(user["id"]),
            cart_id=cart["id"] if clear_cart else None,
            total=format_amount(total),
            items=[
                {"product_id": ln["product_id"], "quantity": ln["quantity"], "price": format_amount(ln["price"])}
                for ln in lines
            ],
        )
    except repository.CartChanged:
        raise Conflict("Le panier a été modifié pendant la validation, veuillez réessayer")
    if not order_id:
        raise RuntimeError("Impossible de créer la commande")
    logger.info("orders.place user_id=%s order_id=%s total=%s lines=%s", user["id"], order_id, format_amount(total), len(lines))
    return find_order(order_id)

def checkout(cart_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """Panier -> commande PENDING; le panier est vidé atomiquement avec la création."""
    cart = carts_service.get_cart_snapshot(cart_id)
    carts_service.assert_cart_access(cart, user)
    if not cart["items"]:
        raise BadRequest("Panier vide")
    return place_order(user, cart, clear_cart=True)

def assert_order_access(order: Dict[str, Any], user: Optional[Dict[str, Any]]) -> None:
    if user is None or is_admin(user):
        return
    if order.get("user_id") != str(user.get("id")):
        raise Forbidden("Cette commande appartient à un autre utilisateur")

def get_order(order_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    order = find_order(order_id)
    assert_order_access(order, user)
    return order

def list_user_orders(user: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [_normalize_order(r) for r in repository.find_orders_by_user(str(user["id"]))]

def cancel_order(order_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    order = get_order(order_id, user)
    if order["status"] != PENDING:
        raise InvalidTransition(order["status"], CANCELLED, entity="commande")
    if not repository.cancel_if_pending(order["id"]):
        # Changement concurrent (ex: confirmation par webhook) entre lecture et écriture
        current = find_order(order["id"])["status"]
        raise InvalidTransition(current, CANCELLED, entity="commande")
    logger.info("orders.cancel order_id=%s", order["id"])
    return find_order(order["id"])

def confirm_order(order_id: str) -> bool:
    """PENDING -> CONFIRMED conditionnel; False si la commande n’était plus PENDING."""
    return repository.confirm_if_pending(order_id)

def abandon_order(order_id: str) -> bool:
    """Action compensatoire: PENDING -> CANCELLED conditionnel, sans contrôle d’accès."""
    cancelled = repository.cancel_if_pending(order_id)
    logger.info("orders.abandon order_id=%s cancelled=%s", order_id, cancelled)
    return cancelled

def to_order_dto(order: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": order["id"],
        "user_id": order.get("user_id"),
        "status": order["status"],
        "total": format_amount(order["total"]),
        "created_at": order.get("created_at"),
        "items": [
            {"product_id": it["product_id"], "quantity": it["quantity"], "price": format_amount(it["price"])}
            for it in order["items"]
        ],
    }
