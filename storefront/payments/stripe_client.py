"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Aucune clé globale: chaque appel passe api_key explicitement.
"""
from typing import Any, Dict, List, Optional

import stripe

from storefront.config import Settings

# Erreurs réseau/serveur Stripe rejouables par la politique de retry
TRANSIENT_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


def configure_stripe(settings: Settings) -> None:
    """
    Configure le client HTTP du SDK une fois par process (lifespan).
    - timeout borné (10 à 30 s)
    - retries réseau implicites du SDK désactivés: seule la RetryPolicy rejoue
    """
    timeout = min(max(float(settings.stripe_timeout_seconds), 10.0), 30.0)
    stripe.max_network_retries = 0
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout)


def as_dict(obj: Any) -> Dict[str, Any]:
    """StripeObject -> dict (récursif); les dicts passent tels quels."""
    if obj is None:
        return {}
    if isinstance(obj, dict):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


def is_missing_resource(exc: Exception) -> bool:
    return isinstance(exc, stripe.InvalidRequestError) and (
        getattr(exc, "code", None) == "resource_missing" or getattr(exc, "http_status", None) == 404
    )


class StripeGateway:
    """
    Accès Stripe utilisé par les services payments et webhooks.
    Retourne des dicts (session, intent, event).
    """

    def __init__(self, secret_key: str, webhook_secret: str = ""):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret

    def create_payment_intent(
        self,
        *,
        amount: int,
        currency: str,
        metadata: Dict[str, str],
        receipt_email: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        if receipt_email:
            params["receipt_email"] = receipt_email
        if description:
            params["description"] = description
        intent = stripe.PaymentIntent.create(api_key=self.secret_key, **params)
        return as_dict(intent)

    def create_checkout_session(
        self,
        *,
        line_items: List[Dict[str, Any]],
        success_url: str,
        cancel_url: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
        mode: str = "payment",
    ) -> Dict[str, Any]:
        """
        Crée une session Stripe Checkout.
        Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
        """
        params: Dict[str, Any] = {
            "line_items": line_items,
            "mode": mode,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
            "payment_method_types": ["card"],
        }
        if customer_email:
            params["customer_email"] = customer_email
        session = stripe.checkout.Session.create(api_key=self.secret_key, **params)
        return as_dict(session)

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        return as_dict(stripe.checkout.Session.retrieve(session_id, api_key=self.secret_key))

    def retrieve_payment_intent(self, intent_id: str) -> Dict[str, Any]:
        return as_dict(stripe.PaymentIntent.retrieve(intent_id, api_key=self.secret_key))

    def construct_event(self, payload: bytes, signature: str, secret: Optional[str] = None) -> Dict[str, Any]:
        """
        Valide la signature (Stripe-Signature) et retourne l'événement en dict.
        Lève stripe.SignatureVerificationError ou ValueError (payload invalide).
        """
        event = stripe.Webhook.construct_event(payload, signature, secret or self.webhook_secret)
        return as_dict(event)
