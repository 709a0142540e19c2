"""
Cas d'usage 'payments': paiement direct d’une commande via un fournisseur (mock / Stripe PaymentIntent).

Exclusion par commande: la tentative INITIATED est insérée avant tout appel au fournisseur;
l’index unique partiel rejette une seconde tentative concurrente (Conflict).
Les échecs du fournisseur produisent une tentative FAILED, jamais une exception.
Une tentative restée INITIATED (écriture échouée, worker interrompu) est libérée en FAILED,
au plus tard après PAYMENT_ATTEMPT_TTL_SECONDS.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
import logging

from . import repository
from . import providers
from boutique import config
from boutique.orders import service as orders_service
from boutique.orders.models import CONFIRMED, CANCELLED
from boutique.errors import BadRequest, Conflict
from boutique.utils.money import to_decimal, format_amount

logger = logging.getLogger(__name__)

INITIATED = "INITIATED"
SUCCESS = "SUCCESS"
FAILED = "FAILED"

def to_payment_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id")),
        "order_id": str(row.get("order_id")),
        "status": row.get("status"),
        "provider": row.get("provider"),
        "reference": row.get("reference"),
        "amount": format_amount(to_decimal(row.get("amount"))),
    }

def _stale_cutoff() -> str:
    cutoff = datetime.now(timezone.utc) - timedelta(seconds=config.PAYMENT_ATTEMPT_TTL_SECONDS)
    return cutoff.isoformat(timespec="microseconds")

def _release_attempt(payment_id: str) -> None:
    """Dernier recours: une tentative restée INITIATED bloquerait la commande."""
    try:
        repository.update_payment(payment_id, status=FAILED)
    except Exception:
        logger.exception("payments.pay release failed payment_id=%s", payment_id)

def pay(order_id: str, method: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Paie une commande PENDING.
    - 404 commande absente, 403 si l’appelant n’en est pas propriétaire (hors admin).
    - 409 si déjà payée (tentative SUCCESS ou commande CONFIRMED) ou tentative concurrente.
    - 400 si la commande est annulée.
    - Succès: tentative SUCCESS avec la référence, commande PENDING -> CONFIRMED.
    - Échec fournisseur: tentative FAILED, commande inchangée (nouvel essai possible).
    - Toute autre sortie sans résultat écrit (erreur de la base, etc.) passe la tentative
      en FAILED avant de propager l’erreur. Les tentatives INITIATED plus anciennes que
      PAYMENT_ATTEMPT_TTL_SECONDS (worker tué) sont expirées avant l’insertion.
    """
    order = orders_service.get_order(order_id, user)
    if order["status"] == CONFIRMED or repository.exists_successful_payment(order["id"]):
        raise Conflict("Commande déjà payée")
    if order["status"] == CANCELLED:
        raise BadRequest("Commande annulée")

    provider_name, charge = providers.resolve_provider(method)
    repository.expire_stale_attempts(order["id"], older_than=_stale_cutoff())
    payment = repository.insert_payment(order_id=order["id"], amount=format_amount(order["total"]), provider=provider_name)
    if payment is None:
        raise Conflict("Un paiement est déjà en cours ou réussi pour cette commande")

    settled = False
    try:
        try:
            reference = charge(order["total"])
        except Exception as e:
            logger.warning("payments.pay failed order_id=%s provider=%s error=%s", order["id"], provider_name, e)
            updated = repository.update_payment(payment["id"], status=FAILED)
            settled = True
            return to_payment_dto(updated or {**payment, "status": FAILED})

        updated = repository.update_payment(payment["id"], status=SUCCESS, reference=reference)
        settled = True
    finally:
        if not settled:
            _release_attempt(payment["id"])

    if updated is None:
        logger.error("payments.pay order_id=%s payment_id=%s encaissé mais tentative déjà clôturée", order["id"], payment["id"])
    if not orders_service.confirm_order(order["id"]):
        logger.error("payments.pay order_id=%s payé mais plus PENDING", order["id"])
    logger.info("payments.pay success order_id=%s provider=%s reference=%s", order["id"], provider_name, reference)
    return to_payment_dto(updated or {**payment, "status": SUCCESS, "reference": reference})

def list_order_payments(order_id: str, user: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    order = orders_service.get_order(order_id, user)
    return [to_payment_dto(r) for r in repository.list_payments_for_order(order["id"])]
