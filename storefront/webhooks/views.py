import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from storefront.config import Settings
from storefront.dependencies import get_projector, get_settings
from storefront.errors import WebhookVerificationError
from storefront.utils.responses import ok

from .projection import OrderProjector
from .verification import verify_event

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Webhooks"])


# module storefront.webhooks.views
@router.post("/stripe/webhook", include_in_schema=False)
@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    projector: OrderProjector = Depends(get_projector),
):
    """
    Webhook Stripe: consomme checkout.session.completed pour créer la commande.
    - Signature invalide: 400 {success: false, error: "Invalid signature"}, aucun effet
    - Sinon toujours 200 {success, received: true, status}, même si la projection échoue
      (erreur journalisée)
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    try:
        event = verify_event(payload, signature, settings.stripe_webhook_secret)
    except WebhookVerificationError as e:
        logger.warning("stripe webhook rejected: %s", e.message)
        raise

    status = "error"
    try:
        result = await run_in_threadpool(projector.apply, event)
        status = result.status
    except Exception:
        logger.exception("stripe webhook projection failed id=%s type=%s", event.id, event.type)
    logger.info("stripe webhook id=%s type=%s status=%s", event.id, event.type, status)
    return ok(received=True, status=status)
