"""
Vérification de signature des webhooks Stripe (fonction pure, sans effet de bord).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe

from storefront.errors import WebhookVerificationError
from storefront.payments.stripe_client import as_dict


@dataclass(frozen=True)
class WebhookEvent:
    id: str
    type: str
    data_object: Dict[str, Any] = field(default_factory=dict)
    created: Optional[int] = None


def verify_event(payload: bytes, signature: Optional[str], secret: str) -> WebhookEvent:
    """
    Valide l'en-tête Stripe-Signature sur le body brut et retourne l'événement typé.
    Lève WebhookVerificationError si signature absente/invalide ou payload mal formé.
    """
    if not signature:
        raise WebhookVerificationError("Missing stripe-signature header")
    if not secret:
        raise WebhookVerificationError("Webhook secret not configured")
    try:
        event = as_dict(stripe.Webhook.construct_event(payload, signature, secret))
    except stripe.SignatureVerificationError as e:
        raise WebhookVerificationError("Invalid signature") from e
    except ValueError as e:
        raise WebhookVerificationError("Invalid payload") from e

    data_object = (event.get("data") or {}).get("object") or {}
    if not event.get("id") or not event.get("type"):
        raise WebhookVerificationError("Invalid payload")
    return WebhookEvent(
        id=event["id"],
        type=event["type"],
        data_object=as_dict(data_object),
        created=event.get("created"),
    )
