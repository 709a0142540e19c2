"""
Sérialisation/désérialisation des métadonnées Stripe (order_id, user_id, cart_id).
"""
from typing import Any, Dict, Optional, Tuple

# module boutique.payments.metadata
def make_metadata(order_id: str, user_id: str, cart_id: str) -> Dict[str, str]:
    """Stripe n’accepte que des valeurs chaîne dans metadata."""
    return {"order_id": str(order_id), "user_id": str(user_id), "cart_id": str(cart_id)}

def extract_metadata_from_session(session: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """
    Extrait (order_id, user_id, cart_id) d’une session Checkout.
    - Valeurs absentes ou vides -> None.
    """
    meta = (session or {}).get("metadata") or {} if isinstance(session, dict) else {}
    return (meta.get("order_id") or None, meta.get("user_id") or None, meta.get("cart_id") or None)

def extract_metadata(event: Dict[str, Any]) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Même extraction depuis un event webhook (event.data.object.metadata)."""
    data_obj = (event or {}).get("data", {}).get("object", {}) if isinstance(event, dict) else {}
    return extract_metadata_from_session(data_obj)
