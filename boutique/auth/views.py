from fastapi import APIRouter, Depends
from typing import Dict, Any

from boutique.utils.security import require_user

# --- API Router (/api/v1/auth) ---

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

@api_router.get("/me")
def api_me(user: Dict[str, Any] = Depends(require_user)):
    """Retourne l’utilisateur courant (id, email, rôle) sans le jeton."""
    return {"id": user.get("id"), "email": user.get("email"), "role": user.get("role")}
