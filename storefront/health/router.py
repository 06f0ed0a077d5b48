import time

from fastapi import APIRouter, Depends, Request

from storefront import __version__
from storefront.config import Settings
from storefront.dependencies import get_settings
from storefront.utils.rate_limit import rate_limit_health_info
from storefront.utils.responses import ok

router = APIRouter(prefix="/api/health", tags=["Health"])


def _uptime(request: Request) -> float:
    # started_at est posé par le lifespan
    started_at = getattr(request.app.state, "started_at", None)
    if started_at is None:
        return 0.0
    return round(time.monotonic() - started_at, 3)


@router.get("")
def health_root(request: Request):
    return ok(status="healthy", uptime=_uptime(request), version=__version__)


@router.get("/detailed")
def health_detailed(request: Request, settings: Settings = Depends(get_settings)):
    """
    Santé détaillée: configuration Stripe/Supabase (sans appel réseau) et état du rate limiting.
    """
    return ok(
        status="healthy",
        uptime=_uptime(request),
        version=__version__,
        environment=settings.environment,
        services={
            "stripe": "configured" if settings.stripe_secret_key else "missing",
            "webhook": "configured" if settings.stripe_webhook_secret else "missing",
            "database": "configured" if settings.supabase_url and settings.supabase_key else "missing",
            "email": "configured" if settings.resend_api_key else "missing",
        },
        rateLimit=rate_limit_health_info(request),
    )
