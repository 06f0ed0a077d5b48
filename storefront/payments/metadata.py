"""
Désérialisation des métadonnées Stripe (orderItems, orderTotal, client).
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
import json


@dataclass
class OrderMetadata:
    items: List[Dict[str, Any]] = field(default_factory=list)
    order_total: Optional[Decimal] = None
    email: Optional[str] = None
    customer_name: Optional[str] = None
    phone: Optional[str] = None
    shipping_address: Optional[str] = None
    request_id: Optional[str] = None


# module storefront.payments.metadata
def parse_order_items(raw: Any) -> List[Dict[str, Any]]:
    """
    orderItems est un JSON sérialisé [{"productId": .., "quantity": .., "price": ..}].
    Tolérant aux erreurs: [] si absent, tronqué ou mal formé.
    """
    if isinstance(raw, list):
        return [it for it in raw if isinstance(it, dict)]
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return [it for it in items if isinstance(it, dict)] if isinstance(items, list) else []


def parse_decimal(raw: Any) -> Optional[Decimal]:
    if raw is None or raw == "":
        return None
    try:
        return Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None


def extract_order_metadata(obj: Dict[str, Any]) -> OrderMetadata:
    """
    Extrait les métadonnées de commande depuis une session Checkout ou un PaymentIntent.
    - Attend obj["metadata"] = {orderItems(JSON), orderTotal, email, customerName, ...}
    """
    meta = (obj or {}).get("metadata") or {} if isinstance(obj, dict) else {}
    return OrderMetadata(
        items=parse_order_items(meta.get("orderItems")),
        order_total=parse_decimal(meta.get("orderTotal")),
        email=meta.get("email") or None,
        customer_name=meta.get("customerName") or None,
        phone=meta.get("phone") or None,
        shipping_address=meta.get("shippingAddress") or None,
        request_id=meta.get("requestId") or None,
    )
