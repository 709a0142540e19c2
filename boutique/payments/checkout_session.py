"""
Paiement hébergé Stripe Checkout.

- create_checkout_session: panier -> line_items -> commande PENDING (panier vidé) -> session Stripe.
- handle_webhook: checkout.session.completed confirme la commande (push).
- verify_session: alternative sans webhook, lit la session au retour du client (pull).
Webhook et vérification passent par la même mise à jour conditionnelle PENDING -> CONFIRMED:
une seule des deux confirme, l’autre est un no-op.
"""
from typing import Any, Dict, Optional
import logging
import stripe

from boutique import config
from boutique.carts import service as carts_service
from boutique.carts import repository as carts_repository
from boutique.orders import service as orders_service
from boutique.orders.models import CANCELLED
from boutique.errors import BadRequest, Forbidden, Unauthorized, ExternalServiceError, NotFound
from boutique.utils.security import is_admin
from . import stripe_client
from . import metadata as meta
from .line_items import build_line_items

logger = logging.getLogger(__name__)

SESSION_COMPLETED = "checkout.session.completed"

def _success_url() -> str:
    # Stripe remplace {CHECKOUT_SESSION_ID} par l’id de session
    return f"{config.FRONTEND_URL}{config.CHECKOUT_SUCCESS_PATH}?session_id={{CHECKOUT_SESSION_ID}}"

def _cancel_url() -> str:
    return f"{config.FRONTEND_URL}{config.CHECKOUT_CANCEL_PATH}"

def create_checkout_session(cart_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Crée la commande puis la session Stripe Checkout pour le panier de l’utilisateur.
    - 403 si le panier n’appartient pas à l’utilisateur, 400 s’il est vide ou sans ligne valide.
    - Les line_items sont construits avant le vidage du panier. Une ligne dont le produit
      a disparu est ignorée du manifeste, mais l’assemblage de la commande lève alors
      NotFound: aucune commande ni session n’est créée.
    - Erreur Stripe: la commande fraîchement créée est annulée puis 502 est levée
      (le contenu du panier n’est pas restauré).
    """
    cart = carts_service.get_cart_snapshot(cart_id)
    if cart.get("user_id") != str(user.get("id")):
        raise Forbidden("Ce panier appartient à un autre utilisateur")
    if not cart["items"]:
        raise BadRequest("Panier vide")

    line_items = build_line_items(cart, config.STRIPE_CURRENCY)
    order = orders_service.place_order(user, cart, clear_cart=True)

    try:
        session = stripe_client.create_session(
            line_items=line_items,
            success_url=_success_url(),
            cancel_url=_cancel_url(),
            metadata=meta.make_metadata(order["id"], str(user["id"]), cart["id"]),
            customer_email=user.get("email"),
        )
    except stripe.StripeError as e:
        logger.exception("checkout_session.create failed order_id=%s", order["id"])
        if not orders_service.abandon_order(order["id"]):
            logger.warning("checkout_session.create order_id=%s non annulée (plus PENDING)", order["id"])
        raise ExternalServiceError(f"Création de la session de paiement échouée: {e.user_message or e}")

    logger.info("checkout_session.create session_id=%s order_id=%s lines=%s", session.get("id"), order["id"], len(line_items))
    return {
        "session_id": session.get("id"),
        "session_url": session.get("url"),
        "order_id": order["id"],
        "status": "PENDING",
    }

def _complete_order(order_id: Optional[str], cart_id: Optional[str], source: str, session_id: Optional[str] = None) -> bool:
    """
    Confirme la commande (si encore PENDING) et supprime le panier d’origine.
    - Commande introuvable: avertissement, aucun effet.
    - Commande déjà annulée: le paiement a été encaissé sans commande valide, erreur journalisée.
    - Retourne True si cet appel a effectué la confirmation.
    """
    if not order_id:
        logger.warning("%s: metadata order_id absente", source)
        return False
    try:
        orders_service.find_order(order_id)
    except NotFound:
        logger.warning("%s: commande introuvable order_id=%s", source, order_id)
        return False

    confirmed = orders_service.confirm_order(order_id)
    if not confirmed and orders_service.find_order(order_id)["status"] == CANCELLED:
        logger.error(
            "%s: paiement reçu pour une commande annulée order_id=%s session_id=%s",
            source, order_id, session_id,
        )
    if cart_id:
        carts_repository.delete_cart(cart_id)
    logger.info("%s: order_id=%s confirmed=%s cart_id=%s", source, order_id, confirmed, cart_id)
    return confirmed

def handle_webhook(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """
    Traite un événement Stripe signé.
    - Sans STRIPE_WEBHOOK_SECRET: no-op silencieux {"status": "skipped"}.
    - Signature invalide -> 401, JSON invalide -> 400.
    - checkout.session.completed: confirmation idempotente; autres types ignorés.
    """
    secret = config.STRIPE_WEBHOOK_SECRET
    if not secret:
        logger.warning("Webhook Stripe reçu sans STRIPE_WEBHOOK_SECRET configuré: ignoré")
        return {"status": "skipped"}

    try:
        event = stripe_client.parse_event(payload, signature or "", secret)
    except stripe.SignatureVerificationError:
        raise Unauthorized("Signature invalide")
    except ValueError:
        raise BadRequest("Payload webhook invalide")

    if (event or {}).get("type") != SESSION_COMPLETED:
        return {"status": "ignored"}

    order_id, _user_id, cart_id = meta.extract_metadata(event)
    session_id = ((event.get("data") or {}).get("object") or {}).get("id")
    confirmed = _complete_order(order_id, cart_id, source="webhook", session_id=session_id)
    return {"status": "ok", "order_id": order_id, "confirmed": confirmed}

def _map_session_status(session: Dict[str, Any]) -> str:
    if session.get("status") == "complete" and session.get("payment_status") == "paid":
        return "SUCCESS"
    if session.get("status") == "expired":
        return "EXPIRED"
    return "PENDING"

def verify_session(session_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Alternative sans webhook: lit la session Stripe et confirme la commande si payée.
    - complete + paid -> SUCCESS, expired -> EXPIRED, sinon PENDING.
    - Sur SUCCESS, confirmation et suppression du panier seulement si la commande est encore PENDING;
      un échec à cette étape est journalisé sans faire échouer la vérification.
    - 403 si la session appartient à un autre utilisateur (hors admin).
    """
    try:
        session = stripe_client.get_session(session_id)
    except stripe.StripeError as e:
        logger.exception("checkout_session.verify failed session_id=%s", session_id)
        raise ExternalServiceError(f"Vérification de la session échouée: {e.user_message or e}")

    order_id, meta_user_id, cart_id = meta.extract_metadata_from_session(session)
    if user is not None and not is_admin(user) and meta_user_id and meta_user_id != str(user.get("id")):
        raise Forbidden("Session appartenant à un autre utilisateur")

    status = _map_session_status(session)
    if status == "SUCCESS" and order_id:
        try:
            order = orders_service.find_order(order_id)
            if order["status"] == "PENDING":
                _complete_order(order_id, cart_id, source="verify", session_id=session_id)
        except Exception:
            logger.exception("checkout_session.verify mise à jour commande échouée order_id=%s", order_id)

    return {
        "session_id": session.get("id") or session_id,
        "session_url": session.get("url"),
        "order_id": order_id,
        "status": status,
        "payment_status": session.get("payment_status"),
    }
