"""
Logique panier pure (pas de Stripe, pas de DB): line_items et métadonnées.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
import json
import logging

from .schemas import PaymentRequest

logger = logging.getLogger(__name__)

# Limite Stripe par valeur de metadata
METADATA_VALUE_LIMIT = 500
CENTS = Decimal("0.01")

# module storefront.payments.cart
def format_major(amount_minor: int) -> str:
    """29,95 USD -> "29.95" (centimes vers unités majeures, 2 décimales)."""
    return str((Decimal(int(amount_minor)) / 100).quantize(CENTS))


def to_line_items(req: PaymentRequest) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe Checkout, une ligne par article du panier.
    - name: item.name ou "Product <productId>", description "Quantity: <n>".
    - unit_amount: round(item.price) en centimes; sans prix, repli sur
      round(amount / nb_articles) (montant faux si quantités > 1, signalé en WARNING).
    - Panier vide: une seule ligne "Order" au montant total.
    """
    items = req.order_items
    if not items:
        return [{
            "quantity": 1,
            "price_data": {
                "currency": req.currency,
                "unit_amount": req.amount_minor,
                "product_data": {"name": "Order"},
            },
        }]

    line_items: List[Dict[str, Any]] = []
    for item in items:
        qty = item.quantity or 1
        if item.price is not None:
            unit_amount = int(round(item.price))
        else:
            unit_amount = int(round(req.amount / len(items)))
            logger.warning(
                "line item without price product=%s: falling back to amount/itemCount=%s",
                item.product_id, unit_amount,
            )
        line_items.append({
            "quantity": qty,
            "price_data": {
                "currency": req.currency,
                "unit_amount": unit_amount,
                "product_data": {
                    "name": item.name or f"Product {item.product_id}",
                    "description": f"Quantity: {qty}",
                },
            },
        })
    return line_items


def _stringify(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def make_metadata(req: PaymentRequest, request_id: Optional[str] = None) -> Dict[str, str]:
    """
    Sérialise les métadonnées Stripe associées à l'intent ou à la session.
    - métadonnées client (email, customerName, phone, shippingAddress...) en chaînes.
    - orderItems: JSON compact tronqué à METADATA_VALUE_LIMIT.
    - orderTotal: total en unités majeures ("29.95").
    - requestId: corrélation des logs.
    """
    metadata: Dict[str, str] = {
        str(k): _stringify(v)[:METADATA_VALUE_LIMIT]
        for k, v in req.metadata.items()
        if v is not None
    }
    items_json = json.dumps([it.as_metadata() for it in req.order_items], separators=(",", ":"))
    if len(items_json) > METADATA_VALUE_LIMIT:
        logger.warning("orderItems metadata truncated (%s chars)", len(items_json))
    metadata["orderItems"] = items_json[:METADATA_VALUE_LIMIT]
    metadata["orderTotal"] = format_major(req.amount_minor)
    if request_id:
        metadata["requestId"] = request_id
    return metadata
