"""
Construction pure des line_items Stripe Checkout (pas de Stripe, pas de DB).
"""
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from boutique.errors import BadRequest
from boutique.utils.money import to_minor_units

# module boutique.payments.line_items
def is_https_url(value: Optional[str]) -> bool:
    """True pour une URL https:// bien formée (schéma + hôte)."""
    if not value or not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return parsed.scheme == "https" and bool(parsed.netloc)

def build_line_items(cart: Dict[str, Any], currency: str) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe à partir du snapshot de panier.
    - unit_amount en plus petite unité monétaire, au prix courant du produit.
    - L’image n’est envoyée que si c’est une URL https valide.
    - Ignore les lignes sans produit ou à quantité <= 0.
    - Lève BadRequest si aucune ligne valide n’est construite.
    """
    line_items: List[Dict[str, Any]] = []
    for item in cart.get("items") or []:
        product = item.get("product")
        qty = int(item.get("quantity") or 0)
        if not product or qty <= 0:
            continue
        product_data: Dict[str, Any] = {"name": product.get("name") or "Article"}
        if product.get("description"):
            product_data["description"] = product["description"]
        if is_https_url(product.get("image_url")):
            product_data["images"] = [product["image_url"].strip()]
        line_items.append({
            "quantity": qty,
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(product.get("price")),
                "product_data": product_data,
            },
        })
    if not line_items:
        raise BadRequest("Aucun article valide dans le panier")
    return line_items
