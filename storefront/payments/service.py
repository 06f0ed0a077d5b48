"""
Cas d'usage 'payments': orchestre cart, metadata, stripe_client et la politique de retry.
Aucune écriture en base: la commande n'est créée que par le webhook.
"""
from typing import Any, Callable, Dict, Optional
from uuid import uuid4
import logging
import time

import stripe

from storefront.errors import NotFound, PaymentProcessorError
from storefront.utils.retry import RetryPolicy, call_with_retry

from . import cart as cart_logic
from .schemas import PaymentRequest
from .stripe_client import StripeGateway, is_missing_resource

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return f"req_{uuid4().hex[:16]}"


def _log_processor_error(request_id: str, what: str, exc: stripe.StripeError) -> None:
    logger.error(
        "[%s] %s failed type=%s code=%s status=%s: %s",
        request_id, what, type(exc).__name__, getattr(exc, "code", None),
        getattr(exc, "http_status", None), exc,
    )


class PaymentService:
    def __init__(
        self,
        gateway: StripeGateway,
        policy: RetryPolicy,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.gateway = gateway
        self.policy = policy
        self.sleep = sleep

    def create_payment_intent(self, req: PaymentRequest, request_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Crée un PaymentIntent Stripe (un appel, rejoué selon la politique).
        Retour: {"clientSecret": ..., "paymentIntentId": ...}
        """
        request_id = request_id or new_request_id()
        logger.info("[%s] creating payment intent amount=%s items=%s", request_id, req.amount_minor, len(req.order_items))
        metadata = cart_logic.make_metadata(req, request_id)
        try:
            intent = call_with_retry(
                lambda: self.gateway.create_payment_intent(
                    amount=req.amount_minor,
                    currency=req.currency,
                    metadata=metadata,
                    receipt_email=req.email,
                    description=f"Order for {req.customer_name}",
                ),
                self.policy,
                sleep=self.sleep,
                label=f"[{request_id}] stripe.PaymentIntent.create",
            )
        except stripe.StripeError as e:
            _log_processor_error(request_id, "payment intent creation", e)
            raise PaymentProcessorError("Failed to create payment intent", e) from e
        logger.info("[%s] payment intent created: %s", request_id, intent.get("id"))
        return {"clientSecret": intent.get("client_secret"), "paymentIntentId": intent.get("id")}

    def create_checkout_session(
        self, req: PaymentRequest, origin: str, request_id: Optional[str] = None,
        success_path: str = "/checkout/success", cancel_path: str = "/cart",
    ) -> Dict[str, Any]:
        """
        Crée une session Checkout hébergée.
        - success_url: <origin><success_path>?session_id={CHECKOUT_SESSION_ID}
        - cancel_url: <origin><cancel_path>
        Retour: {"sessionId": ..., "url": ...}
        """
        request_id = request_id or new_request_id()
        origin = origin.rstrip("/")
        logger.info("[%s] creating checkout session amount=%s items=%s", request_id, req.amount_minor, len(req.order_items))
        line_items = cart_logic.to_line_items(req)
        metadata = cart_logic.make_metadata(req, request_id)
        try:
            session = call_with_retry(
                lambda: self.gateway.create_checkout_session(
                    line_items=line_items,
                    success_url=f"{origin}{success_path}?session_id={{CHECKOUT_SESSION_ID}}",
                    cancel_url=f"{origin}{cancel_path}",
                    metadata=metadata,
                    customer_email=req.email,
                ),
                self.policy,
                sleep=self.sleep,
                label=f"[{request_id}] stripe.checkout.Session.create",
            )
        except stripe.StripeError as e:
            _log_processor_error(request_id, "checkout session creation", e)
            raise PaymentProcessorError("Failed to create checkout session", e) from e
        logger.info("[%s] checkout session created: %s", request_id, session.get("id"))
        return {"sessionId": session.get("id"), "url": session.get("url")}

    def _retrieve(self, func: Callable[[str], Dict[str, Any]], resource_id: str, label: str) -> Dict[str, Any]:
        try:
            return func(resource_id)
        except stripe.StripeError as e:
            if is_missing_resource(e):
                raise NotFound(f"{label} not found") from e
            logger.error("retrieve %s %s failed: %s", label, resource_id, e)
            raise PaymentProcessorError(f"Failed to retrieve {label.lower()}", e) from e

    def order_details(self, session_id: str) -> Dict[str, Any]:
        """
        Résumé de commande depuis la session Checkout (page de confirmation).
        total en unités majeures à partir de amount_total.
        """
        session = self._retrieve(self.gateway.retrieve_session, session_id, "Session")
        amount_total = session.get("amount_total")
        details = session.get("customer_details") or {}
        return {
            "orderId": session.get("id"),
            "total": cart_logic.format_major(amount_total) if amount_total is not None else None,
            "status": session.get("payment_status") or session.get("status"),
            "customerEmail": details.get("email") or session.get("customer_email"),
        }

    def payment_intent(self, intent_id: str) -> Dict[str, Any]:
        intent = self._retrieve(self.gateway.retrieve_payment_intent, intent_id, "Payment intent")
        return {
            "id": intent.get("id"),
            "status": intent.get("status"),
            "amount": intent.get("amount"),
            "currency": intent.get("currency"),
        }

    def checkout_session(self, session_id: str) -> Dict[str, Any]:
        session = self._retrieve(self.gateway.retrieve_session, session_id, "Session")
        return {
            "id": session.get("id"),
            "status": session.get("status"),
            "paymentStatus": session.get("payment_status"),
            "amountTotal": session.get("amount_total"),
            "currency": session.get("currency"),
        }
