"""Couche service des expéditions.
- Création (une par commande), lecture par id ou par commande.
- Changement de statut selon TRANSITIONS, écrit par mise à jour conditionnelle
  sur le statut courant: une modification concurrente fait échouer l’écriture.
"""
from typing import Any, Dict, Optional
import logging

from . import repository
from .models import TRANSITIONS
from boutique.orders import service as orders_service
from boutique.errors import NotFound, BadRequest, Conflict, InvalidTransition

logger = logging.getLogger(__name__)

def to_shipment_dto(row: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(row.get("id")),
        "order_id": str(row.get("order_id")),
        "carrier": row.get("carrier"),
        "tracking_number": row.get("tracking_number"),
        "address": row.get("address"),
        "status": row.get("status"),
    }

def create_shipment(
    order_id: str,
    address: str,
    carrier: Optional[str] = None,
    tracking_number: Optional[str] = None,
    user: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    orders_service.get_order(order_id, user)
    row = repository.insert_shipment(order_id=order_id, address=address, carrier=carrier, tracking_number=tracking_number)
    if row is None:
        raise Conflict("Une expédition existe déjà pour cette commande")
    logger.info("shipments.create order_id=%s shipment_id=%s", order_id, row.get("id"))
    return to_shipment_dto(row)

def get_shipment(shipment_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    row = repository.find_shipment_by_id(shipment_id)
    if not row:
        raise NotFound("Expédition introuvable")
    orders_service.get_order(str(row.get("order_id")), user)
    return to_shipment_dto(row)

def get_shipment_by_order(order_id: str, user: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    orders_service.get_order(order_id, user)
    row = repository.find_shipment_by_order(order_id)
    if not row:
        raise NotFound("Aucune expédition pour cette commande")
    return to_shipment_dto(row)

def update_status(shipment_id: str, status: str) -> Dict[str, Any]:
    """
    CREATED -> SHIPPED -> DELIVERED uniquement.
    - Statut inconnu -> BadRequest; transition interdite -> InvalidTransition (409).
    """
    requested = (status or "").strip().upper()
    if requested not in TRANSITIONS:
        raise BadRequest(f"Statut d’expédition inconnu: {status}")
    row = repository.find_shipment_by_id(shipment_id)
    if not row:
        raise NotFound("Expédition introuvable")
    current = row.get("status")
    if requested not in TRANSITIONS.get(current, set()):
        raise InvalidTransition(current, requested, entity="expédition")

    updated = repository.update_status_if(shipment_id, current, requested)
    if updated is None:
        latest = repository.find_shipment_by_id(shipment_id) or {}
        raise InvalidTransition(latest.get("status") or current, requested, entity="expédition")
    logger.info("shipments.status shipment_id=%s %s -> %s", shipment_id, current, requested)
    return to_shipment_dto(updated)
