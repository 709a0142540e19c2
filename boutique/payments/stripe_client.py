"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
import stripe
from typing import Any, Dict, List, Optional

from boutique import config

# module boutique.payments.stripe_client
def require_stripe() -> stripe:
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - Borne chaque appel réseau (STRIPE_TIMEOUT_SECONDS) et désactive les retries automatiques.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if config.STRIPE_SECRET_KEY:
        stripe.api_key = config.STRIPE_SECRET_KEY
    stripe.max_network_retries = 0
    stripe.default_http_client = stripe.RequestsClient(timeout=config.STRIPE_TIMEOUT_SECONDS)
    return stripe

def _as_dict(obj: Any) -> Dict[str, Any]:
    # Les objets Stripe sont dict-compatibles; to_dict() convertit aussi les objets imbriqués (metadata)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, str],
    customer_email: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout en mode "payment".
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": "payment",
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
    }
    if customer_email:
        params["customer_email"] = customer_email
    session = stripe.checkout.Session.create(**params)
    return _as_dict(session)

def get_session(session_id: str) -> Dict[str, Any]:
    """
    Récupère une session Stripe Checkout par son identifiant.
    Retour: dict session incluant "id", "status", "payment_status", "metadata", etc.
    """
    require_stripe()
    session = stripe.checkout.Session.retrieve(session_id)
    return _as_dict(session)

def create_payment_intent(amount_minor: int, currency: str) -> Dict[str, Any]:
    """Crée un PaymentIntent (montant en plus petite unité monétaire)."""
    require_stripe()
    intent = stripe.PaymentIntent.create(
        amount=amount_minor,
        currency=currency,
        automatic_payment_methods={"enabled": True},
    )
    return _as_dict(intent)

def parse_event(payload: bytes, sig_header: str, secret: str) -> Dict[str, Any]:
    """
    Valide la signature Stripe-Signature (HMAC-SHA256, tolérance 300s) puis décode le JSON.
    - stripe.SignatureVerificationError si la signature ne correspond pas.
    - ValueError si le payload n’est pas un JSON valide.
    """
    text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    stripe.WebhookSignature.verify_header(text, sig_header or "", secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE)
    return json.loads(text)
