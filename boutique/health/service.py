from typing import Dict, Any
import logging
import boutique.infra.supabase_client as supabase_client
from boutique.config import SUPABASE_URL, SUPABASE_SERVICE_KEY

logger = logging.getLogger(__name__)

def health_supabase_info() -> Dict[str, Any]:
    """Vérifie la connexion au store (requête minimale sur 'products')."""
    info: Dict[str, Any] = {
        "url_set": bool(SUPABASE_URL),
        "service_key_set": bool(SUPABASE_SERVICE_KEY),
        "connect_ok": False,
    }
    try:
        supabase_client.get_service_supabase().table("products").select("id").limit(1).execute()
        info["connect_ok"] = True
    except Exception as e:
        logger.warning("health.supabase failed: %s", e)
        info["error"] = str(e)
    return info
