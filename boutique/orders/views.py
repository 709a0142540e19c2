# module boutique.orders.views

"""Endpoints Checkout et Commandes.
- POST /api/v1/checkout/{cart_id}: transforme le panier en commande PENDING (rate-limité).
- /api/v1/orders: lecture, listing et annulation des commandes de l’utilisateur.
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Dict, Any, List
import logging

from boutique.utils.security import require_user
from boutique.utils.rate_limit import optional_rate_limit
from boutique.orders import service as orders_service
from boutique.orders.models import OrderOut

logger = logging.getLogger(__name__)
checkout_router = APIRouter(prefix="/api/v1/checkout", tags=["Checkout API"])
router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])

@checkout_router.post(
    "/{cart_id}",
    status_code=201,
    response_model=OrderOut,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
def api_checkout(cart_id: str, user: Dict[str, Any] = Depends(require_user)):
    """Checkout du panier.
    - 400 si le panier est vide, 404 s’il n’existe pas, 403 s’il appartient à un autre utilisateur.
    - Création de la commande et vidage du panier sont atomiques.
    """
    try:
        order = orders_service.checkout(cart_id, user)
        return orders_service.to_order_dto(order)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur api_checkout cart_id=%s", cart_id)
        raise HTTPException(status_code=400, detail=str(e))

@router.get("", response_model=List[OrderOut])
def api_list_orders(user: Dict[str, Any] = Depends(require_user)):
    return [orders_service.to_order_dto(o) for o in orders_service.list_user_orders(user)]

@router.get("/{order_id}", response_model=OrderOut)
def api_get_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return orders_service.to_order_dto(orders_service.get_order(order_id, user))

@router.post("/{order_id}/cancel", response_model=OrderOut)
def api_cancel_order(order_id: str, user: Dict[str, Any] = Depends(require_user)):
    return orders_service.to_order_dto(orders_service.cancel_order(order_id, user))
