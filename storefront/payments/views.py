import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from storefront.config import Settings
from storefront.dependencies import get_payment_service, get_settings
from storefront.errors import InvalidArgument
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.responses import ok

from .schemas import PaymentRequest
from .service import PaymentService, new_request_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Payments API"])


async def _parse_payment_request(request: Request) -> PaymentRequest:
    """
    Lit et valide le corps JSON {amount, orderItems?, currency?, metadata?}.
    - amount absent, non numérique ou <= 0: 400 "Missing amount"
    - autre champ invalide: 400 "Invalid request body"
    """
    try:
        body = await request.json()
    except ValueError:
        raise InvalidArgument("Invalid JSON body")
    if not isinstance(body, dict):
        raise InvalidArgument("Invalid JSON body")
    if body.get("amount") in (None, "") or isinstance(body.get("amount"), bool):
        raise InvalidArgument("Missing amount")
    try:
        return PaymentRequest.model_validate(body)
    except ValidationError as e:
        if any(err.get("loc", ())[:1] == ("amount",) for err in e.errors()):
            raise InvalidArgument("Missing amount")
        raise InvalidArgument("Invalid request body")


def _origin(request: Request, settings: Settings) -> str:
    return (request.headers.get("origin") or settings.base_url).rstrip("/")


# module storefront.payments.views
@router.post("/create-payment-intent", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
@router.post(
    "/stripe/create-payment-intent",
    include_in_schema=False,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
async def create_payment_intent(request: Request, service: PaymentService = Depends(get_payment_service)):
    """
    Crée un PaymentIntent pour le checkout embarqué.
    - Entrée JSON: {"amount": 2995, "orderItems": [...], "currency": "usd", "metadata": {...}}
    - Aucune écriture en base; la commande est créée par le webhook.
    - Réponse: {success, clientSecret, paymentIntentId, timestamp}
    """
    req = await _parse_payment_request(request)
    result = await run_in_threadpool(service.create_payment_intent, req, new_request_id())
    return ok(**result)


@router.post("/checkout/create-session", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
@router.post(
    "/stripe/create-checkout-session",
    include_in_schema=False,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
async def create_checkout_session(
    request: Request,
    service: PaymentService = Depends(get_payment_service),
    settings: Settings = Depends(get_settings),
):
    """
    Crée une session Checkout hébergée et renvoie {sessionId, url}.
    - Redirections construites sur l'en-tête Origin (ou BASE_URL).
    """
    req = await _parse_payment_request(request)
    result = await run_in_threadpool(
        service.create_checkout_session,
        req,
        _origin(request, settings),
        new_request_id(),
        settings.checkout_success_path,
        settings.checkout_cancel_path,
    )
    return ok(**result)


@router.get("/order-details")
async def order_details(
    session_id: str = Query(default=""),
    service: PaymentService = Depends(get_payment_service),
):
    """Page de confirmation: {orderId, total, status, customerEmail} depuis la session Stripe."""
    if not session_id.strip():
        raise InvalidArgument("Missing session_id")
    details = await run_in_threadpool(service.order_details, session_id.strip())
    return ok(**details)


@router.get("/stripe/payment-intent/{intent_id}")
async def get_payment_intent(intent_id: str, service: PaymentService = Depends(get_payment_service)):
    intent = await run_in_threadpool(service.payment_intent, intent_id)
    return ok(paymentIntent=intent)


@router.get("/stripe/checkout-session/{session_id}")
async def get_checkout_session(session_id: str, service: PaymentService = Depends(get_payment_service)):
    session = await run_in_threadpool(service.checkout_session, session_id)
    return ok(session=session)
