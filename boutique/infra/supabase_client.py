from typing import Optional
from supabase import create_client, Client
from postgrest.exceptions import APIError
from boutique.config import SUPABASE_URL, SUPABASE_ANON, SUPABASE_SERVICE_KEY

_supabase: Optional[Client] = None
_service_supabase: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase
    if _supabase is None:
        _supabase = create_client(SUPABASE_URL, SUPABASE_ANON)
    return _supabase

def get_service_supabase() -> Client:
    """
    Client service-role (bypass RLS) utilisé pour toutes les écritures serveur:
    la propriété des paniers/commandes est vérifiée côté service.
    """
    global _service_supabase
    if not SUPABASE_SERVICE_KEY:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
    return _service_supabase

def _error_code(e: APIError):
    code = getattr(e, "code", None)
    if not code and e.args and isinstance(e.args[0], dict):
        code = e.args[0].get("code")
    return code

def is_unique_violation(e: APIError) -> bool:
    """True si l’APIError PostgREST correspond à une violation de contrainte unique (23505)."""
    return _error_code(e) == "23505"

def is_serialization_failure(e: APIError) -> bool:
    """True pour SQLSTATE 40001 (ex: panier modifié pendant place_order)."""
    return _error_code(e) == "40001"
