from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from storefront.orders.models import Order, OrderItem
from storefront.orders.repository import OrderRepository, order_to_row, row_to_order
from storefront.products.repository import ProductRepository


def _provider(client):
    return SimpleNamespace(get=lambda: client)


def _order():
    return Order(
        customer_name="Jane",
        customer_email="jane@example.com",
        items=[OrderItem(name="Bee Balm", quantity=2, price=Decimal("12.50"), product_id="1")],
        subtotal=Decimal("24.00"),
        shipping=Decimal("5.95"),
        total=Decimal("29.95"),
        stripe_session_id="cs_1",
        stripe_event_id="evt_1",
    )


def test_order_row_round_trip_fields():
    row = order_to_row(_order())
    assert row["total"] == "29.95"
    assert row["subtotal"] == "24.00"
    assert row["stripe_event_id"] == "evt_1"

    row.update({"id": 7, "order_items": [{"product_id": 1, "name": "Bee Balm", "quantity": 2, "price": "12.50"}]})
    order = row_to_order(row)
    assert order.id == "7"
    assert order.items[0].price == Decimal("12.50")
    assert order.items[0].product_id == "1"


def test_insert_order_writes_order_then_items():
    client = MagicMock()
    orders_table, items_table = MagicMock(), MagicMock()
    orders_table.insert.return_value.execute.return_value = SimpleNamespace(data=[{"id": 42}])
    client.table.side_effect = lambda name: {"orders": orders_table, "order_items": items_table}[name]

    saved = OrderRepository(_provider(client)).insert_order(_order())

    assert saved.id == "42"
    inserted_items = items_table.insert.call_args[0][0]
    assert inserted_items == [{"order_id": 42, "product_id": "1", "name": "Bee Balm", "quantity": 2, "price": "12.50"}]


def test_insert_order_propagates_errors():
    client = MagicMock()
    client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("db down")
    with pytest.raises(RuntimeError):
        OrderRepository(_provider(client)).insert_order(_order())


def test_claim_and_release_event_queries():
    client = MagicMock()
    table = client.table.return_value
    table.upsert.return_value.execute.return_value = SimpleNamespace(data=[{"event_id": "evt_1"}])
    repo = OrderRepository(_provider(client))

    assert repo.claim_event("evt_1", "checkout.session.completed") is True
    client.table.assert_called_with("webhook_events")
    table.upsert.assert_called_with(
        {"event_id": "evt_1", "event_type": "checkout.session.completed"},
        on_conflict="event_id",
        ignore_duplicates=True,
    )

    table.upsert.return_value.execute.return_value = SimpleNamespace(data=[])
    assert repo.claim_event("evt_1", "checkout.session.completed") is False

    repo.release_event("evt_1")
    table.delete.return_value.eq.assert_called_with("event_id", "evt_1")


class _MemoryTable:
    """Table PostgREST minimale en mémoire (insert/upsert/delete/eq/execute)."""

    def __init__(self, db, name):
        self.db = db
        self.name = name
        self._op = None
        self._filter = None

    def insert(self, payload):
        self._op = ("insert", payload, None)
        return self

    def upsert(self, payload, on_conflict=None, ignore_duplicates=False):
        self._op = ("upsert", payload, on_conflict)
        return self

    def delete(self):
        self._op = ("delete", None, None)
        return self

    def eq(self, column, value):
        self._filter = (column, value)
        return self

    def execute(self):
        kind, payload, key = self._op
        rows = self.db.rows.setdefault(self.name, [])
        if self.name in self.db.fail_once:
            self.db.fail_once.discard(self.name)
            raise RuntimeError(f"{self.name} unavailable")
        if kind == "delete":
            column, value = self._filter
            self.db.rows[self.name] = [r for r in rows if r.get(column) != value]
            return SimpleNamespace(data=[])
        created = []
        for row in payload if isinstance(payload, list) else [payload]:
            if kind == "upsert" and any(r.get(key) == row.get(key) for r in rows):
                continue
            row = dict(row)
            self.db.next_id += 1
            row.setdefault("id", self.db.next_id)
            rows.append(row)
            created.append(row)
        return SimpleNamespace(data=created)


class _MemoryClient:
    def __init__(self):
        self.rows = {}
        self.fail_once = set()
        self.next_id = 0

    def table(self, name):
        return _MemoryTable(self, name)


def test_failed_items_insert_then_redelivery_keeps_single_order(completed_event):
    from storefront.webhooks.projection import OrderProjector
    from storefront.webhooks.verification import WebhookEvent

    db = _MemoryClient()
    db.fail_once.add("order_items")
    notifier = MagicMock()
    notifier.send_admin_notification.return_value = (True, None)
    notifier.send_customer_confirmation.return_value = (True, None)
    projector = OrderProjector(OrderRepository(_provider(db)), notifier, shipping_cost=Decimal("5.95"))
    raw, _ = completed_event("evt_retry")
    event = WebhookEvent(id=raw["id"], type=raw["type"], data_object=raw["data"]["object"], created=raw["created"])

    with pytest.raises(RuntimeError):
        projector.apply(event)
    assert db.rows["orders"] == []
    assert db.rows["webhook_events"] == []

    assert projector.apply(event).status == "applied"
    assert projector.apply(event).status == "duplicate"
    assert len(db.rows["orders"]) == 1
    assert len(db.rows["order_items"]) == 1
    assert [r["event_id"] for r in db.rows["webhook_events"]] == ["evt_retry"]


def test_list_orders_returns_empty_on_error():
    client = MagicMock()
    client.table.side_effect = RuntimeError("db down")
    assert OrderRepository(_provider(client)).list_orders() == []
    assert OrderRepository(_provider(client)).get_order("1") is None


def test_product_list_uses_single_embedded_count_query():
    client = MagicMock()
    select = client.table.return_value.select
    select.return_value.order.return_value.execute.return_value = SimpleNamespace(
        data=[{"id": 1, "name": "A", "slug": "a", "price": 100, "reviews": [{"count": 2}]}]
    )

    products = ProductRepository(_provider(client)).list_products()

    assert products[0]["reviewCount"] == 2
    assert "reviews(count)" in select.call_args[0][0]
    assert client.table.call_count == 1


def test_update_price_returns_none_when_missing():
    client = MagicMock()
    client.table.return_value.update.return_value.eq.return_value.execute.return_value = SimpleNamespace(data=[])
    assert ProductRepository(_provider(client)).update_price(99, 1000) is None
