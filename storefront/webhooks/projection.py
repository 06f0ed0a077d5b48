"""
Projection idempotente des événements Stripe vers les commandes.
PENDING -> COMPLETE uniquement sur checkout.session.completed.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
import logging

from storefront.notifications.emails import EmailNotifier
from storefront.orders.models import Order, build_order_from_session
from storefront.orders.repository import OrderRepository

from .verification import WebhookEvent

logger = logging.getLogger(__name__)

HANDLED_EVENTS = ("checkout.session.completed",)


@dataclass
class ProjectionResult:
    status: str  # applied | duplicate | ignored
    order: Optional[Order] = None


class OrderProjector:
    def __init__(self, repository: OrderRepository, notifier: EmailNotifier, shipping_cost: Decimal):
        self.repository = repository
        self.notifier = notifier
        self.shipping_cost = shipping_cost

    def apply(self, event: WebhookEvent) -> ProjectionResult:
        """
        Applique un événement au plus une fois.
        - type non géré: ignored, aucun effet
        - event.id déjà réservé: duplicate, aucun effet
        - sinon: réservation de l'event, insertion commande, puis emails (best effort)
        Si l'insertion échoue, la réservation est libérée et l'erreur remonte.
        """
        if event.type not in HANDLED_EVENTS:
            logger.info("webhook event ignored id=%s type=%s", event.id, event.type)
            return ProjectionResult("ignored")

        if not self.repository.claim_event(event.id, event.type):
            logger.info("webhook event already applied id=%s", event.id)
            return ProjectionResult("duplicate")

        try:
            order = build_order_from_session(event.data_object, shipping=self.shipping_cost, event_id=event.id)
            saved = self.repository.insert_order(order)
        except Exception:
            self._release(event.id)
            raise
        logger.info(
            "order %s created from session %s total=%s subtotal=%s",
            saved.id, saved.stripe_session_id, saved.total, saved.subtotal,
        )
        self._notify(saved)
        return ProjectionResult("applied", saved)

    def _release(self, event_id: str) -> None:
        try:
            self.repository.release_event(event_id)
        except Exception:
            logger.exception("webhook event claim not released id=%s", event_id)

    def _notify(self, order: Order) -> None:
        sent, _ = self.notifier.send_admin_notification(order)
        if sent:
            logger.info("admin notification sent order=%s", order.id)
        sent, _ = self.notifier.send_customer_confirmation(order)
        if sent:
            logger.info("customer confirmation sent order=%s", order.id)
