"""
Modèle de commande et reconstruction depuis une session Stripe Checkout.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from storefront.payments.metadata import extract_order_metadata, parse_decimal

CENTS = Decimal("0.01")


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENTS)


class OrderItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    quantity: int = 1
    # prix unitaire en unités majeures
    price: Decimal = Decimal("0.00")
    product_id: Optional[str] = Field(None, alias="productId")

    @property
    def line_total(self) -> Decimal:
        return (self.price * self.quantity).quantize(CENTS)


class Order(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    customer_name: str = Field("Customer", alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    items: List[OrderItem] = Field(default_factory=list)
    subtotal: Decimal
    shipping: Decimal
    total: Decimal
    currency: str = "usd"
    shipping_address: str = Field("", alias="shippingAddress")
    status: str = "paid"
    stripe_session_id: Optional[str] = Field(None, alias="stripeSessionId")
    stripe_event_id: Optional[str] = Field(None, alias="stripeEventId")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="createdAt")

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def format_address(address: Optional[Dict[str, Any]]) -> str:
    """{"line1", "line2", "city", "state", "postal_code", "country"} -> "line1, line2, city, state 12345, US"."""
    if not address:
        return ""
    region = " ".join(p for p in (address.get("state"), address.get("postal_code")) if p)
    parts = [address.get("line1"), address.get("line2"), address.get("city"), region, address.get("country")]
    return ", ".join(p for p in parts if p)


def _shipping_details(session: Dict[str, Any]) -> Dict[str, Any]:
    # Selon la version d'API: shipping_details ou collected_information.shipping_details
    collected = session.get("collected_information") or {}
    return session.get("shipping_details") or collected.get("shipping_details") or {}


def _order_item(raw: Dict[str, Any]) -> OrderItem:
    product_id = raw.get("productId") if raw.get("productId") is not None else raw.get("id")
    price_minor = parse_decimal(raw.get("price")) or Decimal(0)
    try:
        quantity = int(raw.get("quantity") or 1)
    except (TypeError, ValueError):
        quantity = 1
    return OrderItem(
        name=raw.get("name") or f"Product {product_id}",
        quantity=quantity,
        price=(price_minor / 100).quantize(CENTS),
        product_id=str(product_id) if product_id is not None else None,
    )


def build_order_from_session(
    session: Dict[str, Any],
    *,
    shipping: Decimal,
    event_id: Optional[str] = None,
) -> Order:
    """
    Reconstruit la commande uniquement à partir de la session et de ses métadonnées.
    - total: metadata.orderTotal (unités majeures), sinon amount_total / 100
    - subtotal = total - shipping
    - client: customer_details puis métadonnées
    - adresse: shipping_details, customer_details.address, puis metadata.shippingAddress
    """
    meta = extract_order_metadata(session)
    details = session.get("customer_details") or {}
    ship = _shipping_details(session)

    total = meta.order_total
    if total is None:
        amount_total = session.get("amount_total")
        total = Decimal(int(amount_total)) / 100 if amount_total is not None else Decimal(0)
    total = _money(total)
    shipping = _money(shipping)

    address = (
        format_address(ship.get("address"))
        or format_address(details.get("address"))
        or meta.shipping_address
        or ""
    )
    return Order(
        customer_name=details.get("name") or ship.get("name") or meta.customer_name or "Customer",
        customer_email=details.get("email") or session.get("customer_email") or meta.email,
        items=[_order_item(it) for it in meta.items],
        subtotal=total - shipping,
        shipping=shipping,
        total=total,
        currency=(session.get("currency") or "usd").lower(),
        shipping_address=address,
        status="paid",
        stripe_session_id=session.get("id"),
        stripe_event_id=event_id,
    )
