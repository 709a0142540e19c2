# module boutique.carts.views

"""Endpoints Paniers (/api/v1/carts).
- Création / lecture du panier de l’utilisateur connecté.
- Ajout, mise à jour, retrait d’articles; vidage et suppression.
Sécurité:
- require_user partout; la propriété du panier est vérifiée par le service (403 sinon).
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from typing import Dict, Any
import logging

from boutique.utils.security import require_user
from boutique.carts import service as carts_service
from boutique.carts.models import CartItemRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/carts", tags=["Carts API"])

@router.post("", status_code=201)
def api_create_cart(user: Dict[str, Any] = Depends(require_user)):
    return carts_service.to_cart_dto(carts_service.create_cart(user))

@router.get("/mine")
def api_my_cart(user: Dict[str, Any] = Depends(require_user)):
    return carts_service.to_cart_dto(carts_service.get_my_cart(user))

@router.get("/{cart_id}")
def api_get_cart(cart_id: str, user: Dict[str, Any] = Depends(require_user)):
    return carts_service.to_cart_dto(carts_service.get_cart(cart_id, user))

@router.post("/{cart_id}/items")
def api_add_item(cart_id: str, body: CartItemRequest, user: Dict[str, Any] = Depends(require_user)):
    """Ajoute un article; une ligne existante pour le même produit cumule les quantités."""
    try:
        cart = carts_service.add_item(cart_id, body.product_id, body.quantity, user)
        return carts_service.to_cart_dto(cart)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur api_add_item cart_id=%s", cart_id)
        raise HTTPException(status_code=400, detail=str(e))

@router.put("/{cart_id}/items")
def api_update_item(cart_id: str, body: CartItemRequest, user: Dict[str, Any] = Depends(require_user)):
    try:
        cart = carts_service.update_item(cart_id, body.product_id, body.quantity, user)
        return carts_service.to_cart_dto(cart)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Erreur api_update_item cart_id=%s", cart_id)
        raise HTTPException(status_code=400, detail=str(e))

@router.delete("/{cart_id}/items/{product_id}")
def api_remove_item(cart_id: str, product_id: str, user: Dict[str, Any] = Depends(require_user)):
    return carts_service.to_cart_dto(carts_service.remove_item(cart_id, product_id, user))

@router.delete("/{cart_id}/items")
def api_clear_cart(cart_id: str, user: Dict[str, Any] = Depends(require_user)):
    return carts_service.to_cart_dto(carts_service.clear_cart(cart_id, user))

@router.delete("/{cart_id}", status_code=204)
def api_delete_cart(cart_id: str, user: Dict[str, Any] = Depends(require_user)):
    carts_service.delete_cart(cart_id, user)
    return Response(status_code=204)
