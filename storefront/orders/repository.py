"""
Accès aux données pour la feature 'orders' (tables orders, order_items, webhook_events).
Lectures d'affichage tolérantes (None/[] en cas d'erreur). Écritures et
contrôle de déduplication: l'exception remonte.
"""
from typing import Any, Dict, List, Optional
import logging

from storefront.infra.supabase_client import SupabaseProvider

from .models import Order

logger = logging.getLogger(__name__)

ORDER_COLUMNS = (
    "id, customer_name, customer_email, subtotal, shipping, total, currency, "
    "shipping_address, status, stripe_session_id, stripe_event_id, created_at, "
    "order_items(product_id, name, quantity, price)"
)


def order_to_row(order: Order) -> Dict[str, Any]:
    return {
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "subtotal": str(order.subtotal),
        "shipping": str(order.shipping),
        "total": str(order.total),
        "currency": order.currency,
        "shipping_address": order.shipping_address,
        "status": order.status,
        "stripe_session_id": order.stripe_session_id,
        "stripe_event_id": order.stripe_event_id,
        "created_at": order.created_at.isoformat(),
    }


def row_to_order(row: Dict[str, Any]) -> Order:
    return Order(
        id=str(row.get("id")) if row.get("id") is not None else None,
        customer_name=row.get("customer_name") or "Customer",
        customer_email=row.get("customer_email"),
        items=[
            {
                "name": it.get("name") or f"Product {it.get('product_id')}",
                "quantity": it.get("quantity") or 1,
                "price": str(it.get("price") or 0),
                "productId": str(it["product_id"]) if it.get("product_id") is not None else None,
            }
            for it in (row.get("order_items") or [])
        ],
        subtotal=str(row.get("subtotal") or 0),
        shipping=str(row.get("shipping") or 0),
        total=str(row.get("total") or 0),
        currency=row.get("currency") or "usd",
        shipping_address=row.get("shipping_address") or "",
        status=row.get("status") or "paid",
        stripe_session_id=row.get("stripe_session_id"),
        stripe_event_id=row.get("stripe_event_id"),
        created_at=row.get("created_at"),
    )


# module storefront.orders.repository
class OrderRepository:
    def __init__(self, provider: SupabaseProvider):
        self.provider = provider

    def insert_order(self, order: Order) -> Order:
        """
        Insère la commande puis ses lignes (order_items.order_id).
        Si l'insertion des lignes échoue, la commande orpheline est supprimée.
        Retourne la commande avec l'id attribué par la base.
        """
        client = self.provider.get()
        order_id = None
        try:
            res = client.table("orders").insert(order_to_row(order)).execute()
            rows = res.data or []
            if not rows:
                raise RuntimeError("insert orders: aucune ligne retournée")
            order_id = rows[0].get("id")
            if order.items:
                client.table("order_items").insert([
                    {
                        "order_id": order_id,
                        "product_id": it.product_id,
                        "name": it.name,
                        "quantity": it.quantity,
                        "price": str(it.price),
                    }
                    for it in order.items
                ]).execute()
        except Exception:
            logger.exception("orders.repository.insert_order failed session=%s", order.stripe_session_id)
            if order_id is not None:
                self._delete_order(order_id)
            raise
        return order.model_copy(update={"id": str(order_id)})

    def _delete_order(self, order_id: Any) -> None:
        try:
            self.provider.get().table("orders").delete().eq("id", order_id).execute()
        except Exception:
            logger.exception("orders.repository.delete orphan order failed id=%s", order_id)

    def get_order(self, order_id: str) -> Optional[Order]:
        try:
            res = (
                self.provider.get()
                .table("orders")
                .select(ORDER_COLUMNS)
                .eq("id", order_id)
                .limit(1)
                .execute()
            )
            rows = res.data or []
            return row_to_order(rows[0]) if rows else None
        except Exception:
            logger.exception("orders.repository.get_order failed id=%s", order_id)
            return None

    def list_orders(self, email: Optional[str] = None, limit: int = 50) -> List[Order]:
        try:
            query = self.provider.get().table("orders").select(ORDER_COLUMNS)
            if email:
                query = query.eq("customer_email", email)
            res = query.order("created_at", desc=True).limit(limit).execute()
            return [row_to_order(r) for r in (res.data or [])]
        except Exception:
            logger.exception("orders.repository.list_orders failed email=%s", email)
            return []

    def claim_event(self, event_id: str, event_type: str) -> bool:
        """
        Réserve l'événement Stripe (webhook_events.event_id unique).
        Vrai si la ligne vient d'être créée, faux si l'événement était déjà réservé.
        """
        try:
            res = (
                self.provider.get()
                .table("webhook_events")
                .upsert(
                    {"event_id": event_id, "event_type": event_type},
                    on_conflict="event_id",
                    ignore_duplicates=True,
                )
                .execute()
            )
        except Exception:
            logger.exception("orders.repository.claim_event failed event=%s", event_id)
            raise
        return bool(res.data)

    def release_event(self, event_id: str) -> None:
        """Libère la réservation (projection échouée): une relivraison pourra l'appliquer."""
        try:
            self.provider.get().table("webhook_events").delete().eq("event_id", event_id).execute()
        except Exception:
            logger.exception("orders.repository.release_event failed event=%s", event_id)
            raise
