import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Request, Depends, HTTPException

from boutique.utils.security import require_user
from boutique.utils.rate_limit import optional_rate_limit
from boutique.payments import service as payments_service
from boutique.payments import checkout_session
from boutique.payments.models import PaymentRequest, PaymentOut, CheckoutSessionRequest, CheckoutSessionOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

# module boutique.payments.views
@router.post("", response_model=PaymentOut, dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def api_pay(body: PaymentRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Paie une commande avec la méthode demandée ("CARD" -> Stripe, autre -> mock).
    - Un refus du fournisseur n’est pas une erreur HTTP: la réponse porte status=FAILED.
    - 409 si la commande est déjà payée ou si une tentative est en cours.
    """
    try:
        return payments_service.pay(body.order_id, body.method, user)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur api_pay order_id=%s", body.order_id)
        raise HTTPException(status_code=400, detail=str(e))

@router.get("/order/{order_id}", response_model=List[PaymentOut])
def api_order_payments(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return payments_service.list_order_payments(order_id, user)

@router.post(
    "/checkout-session",
    response_model=CheckoutSessionOut,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
def api_create_checkout_session(body: CheckoutSessionRequest, user: Dict[str, Any] = Depends(require_user)):
    """
    Crée une session Stripe Checkout pour le panier de l’utilisateur authentifié.
    - Étapes: line_items -> commande PENDING (panier vidé) -> session Stripe.
    - Retour: {session_id, session_url, order_id, status: "PENDING"}
    - Erreurs: 403 panier d’un autre utilisateur, 400 panier vide, 502 erreur Stripe.
    """
    try:
        return checkout_session.create_checkout_session(body.cart_id, user)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur api_create_checkout_session cart_id=%s", body.cart_id)
        raise HTTPException(status_code=400, detail=str(e))

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (Checkout): consomme checkout.session.completed pour confirmer la commande.
    - Corps brut + en-tête Stripe-Signature (vérifiés avec STRIPE_WEBHOOK_SECRET).
    - Réponses: {"status": "ok"|"ignored"|"skipped"}; 401 signature invalide, 400 payload invalide.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        return checkout_session.handle_webhook(payload, sig_header)
    except HTTPException:
        raise
    except Exception:
        logger.exception("Erreur webhook_stripe")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")

@router.get("/verify-session/{session_id}", response_model=CheckoutSessionOut)
def api_verify_session(session_id: str, user: Dict[str, Any] = Depends(require_user)):
    """
    Alternative sans webhook: vérifie la session Stripe au retour sur la page de succès.
    - Confirme la commande si la session est payée et la commande encore PENDING.
    """
    return checkout_session.verify_session(session_id, user)
