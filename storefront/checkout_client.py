"""
Orchestration côté client du parcours de paiement (panier -> intent/session -> confirmation).
Le panier vit côté client; l'API storefront est appelée via httpx.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx

PricesMap = Mapping[str, int]


class CheckoutError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class CartLine:
    product_id: str
    quantity: int = 1


@dataclass
class Cart:
    """Panier client; prix en centimes fournis par le catalogue (prices[product_id])."""

    lines: List[CartLine] = field(default_factory=list)

    def add(self, product_id: Any, quantity: int = 1) -> None:
        if quantity <= 0:
            raise ValueError("quantity must be > 0")
        pid = str(product_id)
        for line in self.lines:
            if line.product_id == pid:
                line.quantity += quantity
                return
        self.lines.append(CartLine(pid, quantity))

    def remove(self, product_id: Any) -> None:
        pid = str(product_id)
        self.lines = [line for line in self.lines if line.product_id != pid]

    def clear(self) -> None:
        self.lines = []

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def _price(self, prices: PricesMap, product_id: str) -> int:
        if product_id not in prices:
            raise CheckoutError(f"Unknown price for product {product_id}")
        return int(prices[product_id])

    def subtotal(self, prices: PricesMap) -> int:
        return sum(self._price(prices, line.product_id) * line.quantity for line in self.lines)

    def total(self, prices: PricesMap, shipping: int = 0) -> int:
        return self.subtotal(prices) + int(shipping)

    def order_items(self, prices: PricesMap) -> List[Dict[str, Any]]:
        return [
            {"productId": line.product_id, "quantity": line.quantity, "price": self._price(prices, line.product_id)}
            for line in self.lines
        ]


class CheckoutClient:
    """
    Client HTTP de l'API storefront.
    - http: httpx.Client injectable (tests: httpx.MockTransport)
    """

    def __init__(self, base_url: str, http: Optional[httpx.Client] = None, timeout: float = 20.0):
        self.base_url = base_url.rstrip("/")
        self.http = http or httpx.Client(base_url=self.base_url, timeout=timeout)

    def close(self) -> None:
        self.http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self.http.request(method, f"{self.base_url}{path}", **kwargs)
        except httpx.HTTPError as e:
            raise CheckoutError(f"Network error: {e}") from e
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            body = body if isinstance(body, dict) else {}
            message = body.get("message") or body.get("error") or f"HTTP {response.status_code}"
            raise CheckoutError(message, response.status_code)
        return response.json()

    def _payload(
        self,
        cart: Cart,
        prices: PricesMap,
        customer: Optional[Mapping[str, Any]],
        shipping: int,
        currency: str,
    ) -> Dict[str, Any]:
        if cart.is_empty:
            raise CheckoutError("Cart is empty")
        metadata = {k: str(v) for k, v in (customer or {}).items() if v is not None}
        return {
            "amount": cart.total(prices, shipping),
            "orderItems": cart.order_items(prices),
            "currency": currency,
            "metadata": metadata,
        }

    def create_payment_intent(
        self,
        cart: Cart,
        prices: PricesMap,
        customer: Optional[Mapping[str, Any]] = None,
        shipping: int = 0,
        currency: str = "usd",
    ) -> Dict[str, Any]:
        """Checkout embarqué: retourne {clientSecret, paymentIntentId}."""
        data = self._request(
            "POST", "/api/create-payment-intent",
            json=self._payload(cart, prices, customer, shipping, currency),
        )
        return {"clientSecret": data.get("clientSecret"), "paymentIntentId": data.get("paymentIntentId")}

    def create_checkout_session(
        self,
        cart: Cart,
        prices: PricesMap,
        customer: Optional[Mapping[str, Any]] = None,
        shipping: int = 0,
        currency: str = "usd",
    ) -> Dict[str, Any]:
        """Checkout hébergé: retourne {sessionId, url} (redirection vers url)."""
        data = self._request(
            "POST", "/api/checkout/create-session",
            json=self._payload(cart, prices, customer, shipping, currency),
        )
        return {"sessionId": data.get("sessionId"), "url": data.get("url")}

    def order_details(self, session_id: str) -> Dict[str, Any]:
        return self._request("GET", "/api/order-details", params={"session_id": session_id})

    def payment_intent(self, intent_id: str) -> Dict[str, Any]:
        """Statut d'un PaymentIntent (id, status, amount, currency)."""
        return self._request("GET", f"/api/stripe/payment-intent/{quote(intent_id, safe='')}").get("paymentIntent") or {}

    def checkout_session(self, session_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/stripe/checkout-session/{quote(session_id, safe='')}").get("session") or {}

    def complete(self, cart: Cart) -> None:
        """Paiement confirmé: le panier est vidé."""
        cart.clear()
