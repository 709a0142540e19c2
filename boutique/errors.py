"""
Erreurs métier du pipeline commande/paiement.

Chaque erreur est une HTTPException: les services la lèvent directement et
FastAPI la convertit en réponse JSON (voir app_setup/exceptions.py).
"""
from typing import Optional
from fastapi import HTTPException


class ShopError(HTTPException):
    status_code = 500

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(status_code=status_code or self.status_code, detail=detail)


class NotFound(ShopError):
    status_code = 404


class BadRequest(ShopError):
    status_code = 400


class Conflict(ShopError):
    status_code = 409


class Forbidden(ShopError):
    status_code = 403


class Unauthorized(ShopError):
    status_code = 401


class InvalidTransition(ShopError):
    status_code = 409

    def __init__(self, current: str, requested: str, entity: str = "statut"):
        self.current = current
        self.requested = requested
        super().__init__(f"Transition de {entity} invalide: {current} -> {requested}")


class ExternalServiceError(ShopError):
    status_code = 502
