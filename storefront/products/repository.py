"""
Accès aux données pour la feature 'products' (prix en centimes).
"""
from typing import Any, Dict, Iterable, List, Optional
import logging

from storefront.infra.supabase_client import SupabaseProvider

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = (
    "id, name, slug, description, short_description, price, images, category, stock, "
    "featured, benefits, usage, is_bestseller, is_new"
)


def normalize_product(row: Dict[str, Any]) -> Dict[str, Any]:
    """Ligne Supabase -> produit API (camelCase, reviewCount depuis l'agrégat embarqué)."""
    reviews = row.get("reviews") or []
    review_count = 0
    if isinstance(reviews, list) and reviews and isinstance(reviews[0], dict):
        review_count = int(reviews[0].get("count") or 0)
    return {
        "id": row.get("id"),
        "name": row.get("name") or "",
        "slug": row.get("slug") or "",
        "description": row.get("description") or "",
        "shortDescription": row.get("short_description"),
        "price": int(row.get("price") or 0),
        "images": row.get("images") or [],
        "category": row.get("category"),
        "stock": row.get("stock") or 0,
        "featured": bool(row.get("featured")),
        "benefits": row.get("benefits") or [],
        "usage": row.get("usage"),
        "isBestseller": bool(row.get("is_bestseller")),
        "isNew": bool(row.get("is_new")),
        "reviewCount": review_count,
    }


# module storefront.products.repository
class ProductRepository:
    def __init__(self, provider: SupabaseProvider):
        self.provider = provider

    def list_products(self) -> List[Dict[str, Any]]:
        """
        Produits triés par nom avec le nombre d'avis en une seule requête
        (agrégat embarqué reviews(count), pas de requête par produit).
        Retourne [] en cas d'erreur.
        """
        try:
            res = (
                self.provider.get()
                .table("products")
                .select(f"{PRODUCT_COLUMNS}, reviews(count)")
                .order("name")
                .execute()
            )
            return [normalize_product(r) for r in (res.data or [])]
        except Exception:
            logger.exception("products.repository.list_products failed")
            return []

    def get_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self.provider.get()
                .table("products")
                .select(f"{PRODUCT_COLUMNS}, reviews(count)")
                .eq("slug", slug)
                .limit(1)
                .execute()
            )
            rows = res.data or []
            return normalize_product(rows[0]) if rows else None
        except Exception:
            logger.exception("products.repository.get_by_slug failed slug=%s", slug)
            return None

    def get_prices(self, ids: Iterable[Any]) -> Dict[str, int]:
        """Retourne {id: prix en centimes} pour les ids demandés ({} si vide ou erreur)."""
        id_list = [str(i) for i in ids if i is not None and str(i).strip()]
        if not id_list:
            return {}
        try:
            res = (
                self.provider.get()
                .table("products")
                .select("id, price")
                .in_("id", id_list)
                .execute()
            )
            return {str(r.get("id")): int(r.get("price") or 0) for r in (res.data or [])}
        except Exception:
            logger.exception("products.repository.get_prices failed ids=%s", id_list)
            return {}

    def update_price(self, product_id: Any, price_cents: int) -> Optional[Dict[str, Any]]:
        """Met à jour le prix; None si le produit n'existe pas. Les erreurs remontent."""
        try:
            res = (
                self.provider.get()
                .table("products")
                .update({"price": int(price_cents)})
                .eq("id", product_id)
                .execute()
            )
        except Exception:
            logger.exception("products.repository.update_price failed id=%s", product_id)
            raise
        rows = res.data or []
        return normalize_product(rows[0]) if rows else None
