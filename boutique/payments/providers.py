"""
Fournisseurs de paiement interchangeables: charge(amount) -> référence de transaction.

Le registre PROVIDERS associe un nom à une fonction; la résolution se fait à
l’appel (resolve_provider) pour que les tests puissent remplacer une entrée.
"""
from decimal import Decimal
from typing import Callable, Dict, Tuple
import logging
import time

from boutique import config
from boutique.payments import stripe_client
from boutique.utils.money import to_minor_units

logger = logging.getLogger(__name__)

Charge = Callable[[Decimal], str]

class ProviderError(Exception):
    """Échec de prélèvement (refus, timeout, configuration manquante)."""

def mock_charge(amount: Decimal) -> str:
    # Simule un succès
    return f"MOCK_TXN_{int(time.time() * 1000)}"

def stripe_charge(amount: Decimal) -> str:
    """Crée un PaymentIntent Stripe; retourne son id comme référence."""
    if not config.STRIPE_SECRET_KEY:
        raise ProviderError("STRIPE_SECRET_KEY manquant")
    try:
        intent = stripe_client.create_payment_intent(to_minor_units(amount), config.STRIPE_CURRENCY)
    except Exception as e:
        raise ProviderError(f"Paiement Stripe échoué: {e}") from e
    reference = intent.get("id")
    if not reference:
        raise ProviderError("PaymentIntent sans identifiant")
    return reference

PROVIDERS: Dict[str, Charge] = {
    "STRIPE": stripe_charge,
    "MOCK": mock_charge,
}

def resolve_provider(method: str) -> Tuple[str, Charge]:
    """'CARD' (insensible à la casse) -> Stripe; toute autre méthode -> mock."""
    name = "STRIPE" if (method or "").strip().upper() == "CARD" else "MOCK"
    return name, PROVIDERS[name]
