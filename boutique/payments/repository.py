"""
Accès aux données pour la feature 'payments' (table payments, append-only).

L’index unique partiel payments(order_id) WHERE status IN ('INITIATED','SUCCESS')
garantit au plus une tentative en cours ou réussie par commande.
"""
from typing import Dict, Any, List, Optional
import logging
from postgrest.exceptions import APIError
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module boutique.payments.repository
def insert_payment(*, order_id: str, amount: str, provider: str) -> Optional[Dict[str, Any]]:
    """
    Insère une tentative INITIATED.
    Retourne None en cas de doublon (23505): une autre tentative est en cours ou a réussi.
    """
    payload = {"order_id": str(order_id), "amount": amount, "status": "INITIATED", "provider": provider}
    try:
        res = supabase_client.get_service_supabase().table("payments").insert(payload).execute()
    except APIError as e:
        if supabase_client.is_unique_violation(e):
            logger.info("payments.repository.insert_payment duplicate order_id=%s", order_id)
            return None
        raise
    rows = res.data or []
    return rows[0] if rows else None

def update_payment(payment_id: str, *, status: str, reference: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Passe une tentative INITIATED à son état terminal (SUCCESS | FAILED)."""
    values: Dict[str, Any] = {"status": status}
    if reference is not None:
        values["reference"] = reference
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .update(values)
        .eq("id", str(payment_id))
        .eq("status", "INITIATED")
        .execute()
    )
    rows = res.data or []
    return rows[0] if rows else None

def expire_stale_attempts(order_id: str, *, older_than: str) -> int:
    """
    Passe en FAILED les tentatives INITIATED de la commande créées avant older_than (ISO 8601).
    Libère l’index unique partiel quand un worker est mort pendant le prélèvement.
    """
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .update({"status": "FAILED"})
        .eq("order_id", str(order_id))
        .eq("status", "INITIATED")
        .lt("created_at", older_than)
        .execute()
    )
    expired = len(res.data or [])
    if expired:
        logger.warning("payments.repository.expire_stale_attempts order_id=%s expired=%s", order_id, expired)
    return expired

def exists_successful_payment(order_id: str) -> bool:
    res = (
        supabase_client.get_service_supabase()
        .table("payments")
        .select("id")
        .eq("order_id", str(order_id))
        .eq("status", "SUCCESS")
        .limit(1)
        .execute()
    )
    return bool(res.data)

def list_payments_for_order(order_id: str) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("id, order_id, amount, status, provider, reference, created_at")
            .eq("order_id", str(order_id))
            .order("created_at")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("payments.repository.list_payments_for_order failed order_id=%s", order_id)
        return []
