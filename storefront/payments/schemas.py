"""
Modèles d'entrée des endpoints de paiement (intent embarqué et session hébergée).
"""
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class OrderItemIn(BaseModel):
    """Ligne de panier telle qu'envoyée par le client (prix en unités mineures)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    product_id: Optional[Union[int, str]] = Field(
        None, validation_alias=AliasChoices("productId", "product_id", "id")
    )
    quantity: Optional[int] = Field(None, ge=0)
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    name: Optional[str] = None

    def as_metadata(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"productId": self.product_id, "quantity": self.quantity or 1}
        if self.price is not None:
            data["price"] = int(round(self.price))
        if self.name:
            data["name"] = self.name
        return data


class PaymentRequest(BaseModel):
    """
    Corps commun à /create-payment-intent et /checkout/create-session.
    - amount: total en unités mineures (centimes), obligatoire et > 0.
    - orderItems: snapshot du panier (défaut []).
    - currency: défaut "usd".
    - metadata: clé/valeur libre (email, customerName, phone, shippingAddress...).
    """

    model_config = ConfigDict(populate_by_name=True)

    amount: float = Field(..., gt=0, allow_inf_nan=False)
    order_items: List[OrderItemIn] = Field(default_factory=list, alias="orderItems")
    currency: str = "usd"
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def _lower_currency(cls, v: str) -> str:
        return (v or "usd").strip().lower() or "usd"

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_dict(cls, v: Any) -> Dict[str, Any]:
        return v or {}

    @property
    def amount_minor(self) -> int:
        return int(round(self.amount))

    @property
    def email(self) -> Optional[str]:
        return (str(self.metadata.get("email") or "").strip()) or None

    @property
    def customer_name(self) -> str:
        return str(self.metadata.get("customerName") or "").strip() or "Customer"
