"""
Lecture du catalogue (table 'products'). Le CRUD produits est géré hors de ce service.
"""
from typing import Dict, Any, Optional
import logging
import boutique.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = "id, name, description, price, image_url"

# module boutique.catalog.repository
def get_product(product_id: str) -> Optional[Dict[str, Any]]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("products")
            .select(PRODUCT_COLUMNS)
            .eq("id", str(product_id))
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("catalog.repository.get_product failed product_id=%s", product_id)
        return None
