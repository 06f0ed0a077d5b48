import hashlib
import hmac
import json
import time
from typing import Any, Dict, List, Optional

import bcrypt
import pytest
from fastapi.testclient import TestClient

from storefront.app_setup import create_app
from storefront.config import Settings
from storefront.dependencies import (
    get_order_repository,
    get_payment_service,
    get_product_catalog,
    get_projector,
)
from storefront.orders.models import Order
from storefront.payments.service import PaymentService
from storefront.products.service import ProductCatalog
from storefront.resources import payment_retry_policy
from storefront.webhooks.projection import OrderProjector

WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_CODE = "admin-code-123"


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeGateway:
    """StripeGateway simulé: enregistre les appels, lève d'abord les erreurs de `failures`."""

    def __init__(self):
        self.intent_calls: List[Dict[str, Any]] = []
        self.session_calls: List[Dict[str, Any]] = []
        self.failures: List[Exception] = []
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.retrieve_error: Optional[Exception] = None

    def _maybe_fail(self):
        if self.failures:
            raise self.failures.pop(0)

    def create_payment_intent(self, **kwargs):
        self.intent_calls.append(kwargs)
        self._maybe_fail()
        n = len(self.intent_calls)
        return {"id": f"pi_test_{n}", "client_secret": f"pi_test_{n}_secret_{n}"}

    def create_checkout_session(self, **kwargs):
        self.session_calls.append(kwargs)
        self._maybe_fail()
        n = len(self.session_calls)
        return {"id": f"cs_test_{n}", "url": f"https://checkout.stripe.test/c/cs_test_{n}"}

    def retrieve_session(self, session_id):
        if self.retrieve_error:
            raise self.retrieve_error
        return self.sessions[session_id]

    def retrieve_payment_intent(self, intent_id):
        if self.retrieve_error:
            raise self.retrieve_error
        return self.intents[intent_id]


class FakeOrderRepository:
    def __init__(self):
        self.orders: List[Order] = []
        self.applied: Dict[str, str] = {}
        self.fail_insert = False

    def insert_order(self, order: Order) -> Order:
        if self.fail_insert:
            raise RuntimeError("database unavailable")
        saved = order.model_copy(update={"id": str(len(self.orders) + 1)})
        self.orders.append(saved)
        return saved

    def get_order(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.orders if o.id == order_id), None)

    def list_orders(self, email: Optional[str] = None, limit: int = 50) -> List[Order]:
        rows = [o for o in self.orders if not email or o.customer_email == email]
        return list(reversed(rows))[:limit]

    def claim_event(self, event_id: str, event_type: str) -> bool:
        if event_id in self.applied:
            return False
        self.applied[event_id] = event_type
        return True

    def release_event(self, event_id: str) -> None:
        self.applied.pop(event_id, None)


class FakeNotifier:
    def __init__(self):
        self.admin: List[Order] = []
        self.customer: List[Order] = []

    def send_admin_notification(self, order):
        self.admin.append(order)
        return True, None

    def send_customer_confirmation(self, order):
        self.customer.append(order)
        return True, None


class FakeProductRepository:
    def __init__(self, products: Optional[List[Dict[str, Any]]] = None):
        self.products = products if products is not None else [
            {"id": 1, "name": "Bee Balm", "slug": "bee-balm", "price": 1250, "reviewCount": 3},
            {"id": 2, "name": "Honey Soap", "slug": "honey-soap", "price": 800, "reviewCount": 0},
        ]
        self.list_calls = 0

    def list_products(self):
        self.list_calls += 1
        return [dict(p) for p in self.products]

    def get_by_slug(self, slug):
        return next((dict(p) for p in self.products if p["slug"] == slug), None)

    def get_prices(self, ids):
        wanted = {str(i) for i in ids}
        return {str(p["id"]): p["price"] for p in self.products if str(p["id"]) in wanted}

    def update_price(self, product_id, price_cents):
        for p in self.products:
            if str(p["id"]) == str(product_id):
                p["price"] = price_cents
                return dict(p)
        return None


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def admin_hash() -> str:
    return bcrypt.hashpw(ADMIN_CODE.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture
def test_settings(admin_hash) -> Settings:
    return Settings(
        stripe_secret_key="sk_test_dummy",
        stripe_webhook_secret=WEBHOOK_SECRET,
        supabase_url="https://example.supabase.co",
        supabase_key="service-role-key",
        environment="test",
        admin_secret_hash=admin_hash,
        rate_limit_enabled=False,
    )


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def fake_orders() -> FakeOrderRepository:
    return FakeOrderRepository()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def fake_products() -> FakeProductRepository:
    return FakeProductRepository()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> List[float]:
    """Délais demandés par la politique de retry (aucune attente réelle)."""
    return []


@pytest.fixture
def payment_service(test_settings, fake_gateway, sleeps) -> PaymentService:
    return PaymentService(fake_gateway, payment_retry_policy(test_settings), sleep=sleeps.append)


@pytest.fixture
def projector(test_settings, fake_orders, fake_notifier) -> OrderProjector:
    return OrderProjector(fake_orders, fake_notifier, shipping_cost=test_settings.effective_shipping)


@pytest.fixture
def catalog(fake_products, fake_clock) -> ProductCatalog:
    return ProductCatalog(fake_products, ttl_seconds=30, clock=fake_clock)


@pytest.fixture
def app(test_settings, payment_service, projector, fake_orders, catalog):
    application = create_app(test_settings)
    application.dependency_overrides[get_payment_service] = lambda: payment_service
    application.dependency_overrides[get_projector] = lambda: projector
    application.dependency_overrides[get_order_repository] = lambda: fake_orders
    application.dependency_overrides[get_product_catalog] = lambda: catalog
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"X-Admin-Code": ADMIN_CODE}


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature valide (t=<ts>,v1=<hmac sha256>)."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


@pytest.fixture
def signer():
    return sign_payload


@pytest.fixture
def completed_event():
    """Fabrique un événement checkout.session.completed (dict) et son payload JSON."""
    def _make(event_id: str = "evt_test_1", order_total: Optional[str] = "29.95", **session_overrides):
        metadata = {
            "email": "jane@example.com",
            "customerName": "Jane Doe",
            "orderItems": json.dumps([
                {"productId": 1, "quantity": 2, "price": 1250},
            ]),
        }
        if order_total is not None:
            metadata["orderTotal"] = order_total
        session = {
            "id": "cs_test_abc",
            "object": "checkout.session",
            "amount_total": 2995,
            "currency": "usd",
            "payment_status": "paid",
            "customer_details": {"email": "jane@example.com", "name": "Jane Doe", "address": None},
            "metadata": metadata,
        }
        session.update(session_overrides)
        event = {
            "id": event_id,
            "object": "event",
            "type": "checkout.session.completed",
            "created": 1700000000,
            "data": {"object": session},
        }
        return event, json.dumps(event).encode("utf-8")
    return _make
