"""
Module 'payments' (feature-first): point d'entrée public.
Réunit fournisseurs de paiement, client Stripe, line_items, metadata, repository BD et services.
"""

from .providers import PROVIDERS, ProviderError, mock_charge, stripe_charge, resolve_provider
from .line_items import build_line_items, is_https_url
from .metadata import make_metadata, extract_metadata, extract_metadata_from_session
from .stripe_client import require_stripe, create_session, get_session, create_payment_intent, parse_event
from .service import pay, list_order_payments
from .checkout_session import create_checkout_session, handle_webhook, verify_session

__all__ = [
    # providers
    "PROVIDERS",
    "ProviderError",
    "mock_charge",
    "stripe_charge",
    "resolve_provider",
    # line items / metadata
    "build_line_items",
    "is_https_url",
    "make_metadata",
    "extract_metadata",
    "extract_metadata_from_session",
    # stripe
    "require_stripe",
    "create_session",
    "get_session",
    "create_payment_intent",
    "parse_event",
    # services
    "pay",
    "list_order_payments",
    "create_checkout_session",
    "handle_webhook",
    "verify_session",
]
