"""
Emails transactionnels via Resend (best effort).
- send_admin_notification: nouvelle commande pour l'administrateur
- send_customer_confirmation: confirmation envoyée au client
Les deux retournent (ok, erreur) et ne lèvent jamais.
"""
from html import escape
from typing import Dict, List, Optional, Tuple
import logging
import threading

import resend

from storefront.orders.models import Order

logger = logging.getLogger(__name__)

_resend_lock = threading.Lock()

SendResult = Tuple[bool, Optional[str]]


def _item_lines(order: Order) -> List[str]:
    return [f"- {it.name} x{it.quantity}: ${it.line_total}" for it in order.items]


def order_summary_text(order: Order) -> str:
    lines = _item_lines(order) or ["- (no items)"]
    return "\n".join([
        *lines,
        "",
        f"Subtotal: ${order.subtotal}",
        f"Shipping: ${order.shipping}",
        f"Total: ${order.total}",
    ])


def order_summary_html(order: Order) -> str:
    rows = "".join(
        f"<tr><td>{escape(it.name)}</td><td>{it.quantity}</td><td>${it.line_total}</td></tr>"
        for it in order.items
    )
    return (
        "<table>"
        "<tr><th>Item</th><th>Qty</th><th>Price</th></tr>"
        f"{rows}"
        f"<tr><td colspan='2'>Subtotal</td><td>${order.subtotal}</td></tr>"
        f"<tr><td colspan='2'>Shipping</td><td>${order.shipping}</td></tr>"
        f"<tr><td colspan='2'><strong>Total</strong></td><td><strong>${order.total}</strong></td></tr>"
        "</table>"
    )


class EmailNotifier:
    def __init__(self, api_key: str, sender: str, admin_email: str = ""):
        self.api_key = (api_key or "").strip()
        self.sender = sender
        self.admin_email = (admin_email or "").strip()

    def _send(self, payload: Dict[str, object]) -> SendResult:
        if not self.api_key:
            return False, "Resend API key is not configured."
        with _resend_lock:
            previous_api_key = getattr(resend, "api_key", None)
            resend.api_key = self.api_key
            try:
                response = resend.Emails.send(payload)
            except Exception as exc:
                return False, str(exc)
            finally:
                resend.api_key = previous_api_key
        if not isinstance(response, dict) or not response.get("id"):
            return False, str(response)
        return True, None

    def send_admin_notification(self, order: Order) -> SendResult:
        if not self.admin_email:
            logger.warning("admin notification skipped: ADMIN_EMAIL not configured (order=%s)", order.id)
            return False, "Admin email is not configured."
        text = "\n".join([
            f"New order {order.id or ''}",
            f"Customer: {order.customer_name} <{order.customer_email or 'n/a'}>",
            f"Ship to: {order.shipping_address or 'n/a'}",
            "",
            order_summary_text(order),
        ])
        html = (
            f"<h2>New order {escape(order.id or '')}</h2>"
            f"<p>{escape(order.customer_name)} &lt;{escape(order.customer_email or 'n/a')}&gt;</p>"
            f"<p>Ship to: {escape(order.shipping_address or 'n/a')}</p>"
            f"{order_summary_html(order)}"
        )
        ok, error = self._send({
            "from": self.sender,
            "to": [self.admin_email],
            "subject": f"New order: ${order.total}",
            "text": text,
            "html": html,
        })
        if not ok:
            logger.warning("admin notification failed order=%s: %s", order.id, error)
        return ok, error

    def send_customer_confirmation(self, order: Order) -> SendResult:
        if not order.customer_email:
            logger.warning("customer confirmation skipped: no email (order=%s)", order.id)
            return False, "Customer email is missing."
        text = "\n".join([
            f"Hi {order.customer_name},",
            "",
            "Thank you for your order! Here is your summary:",
            "",
            order_summary_text(order),
        ])
        html = (
            f"<p>Hi {escape(order.customer_name)},</p>"
            "<p>Thank you for your order! Here is your summary:</p>"
            f"{order_summary_html(order)}"
        )
        ok, error = self._send({
            "from": self.sender,
            "to": [order.customer_email],
            "subject": "Your order confirmation",
            "text": text,
            "html": html,
        })
        if not ok:
            logger.warning("customer confirmation failed order=%s: %s", order.id, error)
        return ok, error
