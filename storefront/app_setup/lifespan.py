"""
Lifespan FastAPI: initialisation/arrêt des ressources partagées.
- Valide la configuration (secrets obligatoires absents: erreur fatale)
- Configure le client HTTP Stripe et construit les Resources (app.state.resources)
- Initialise FastAPILimiter (Redis) selon les Settings:
  - rate_limit_enabled=False (DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1): désactivé
  - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre mémoire si Redis indisponible
"""
from contextlib import asynccontextmanager
import logging
import time

import redis.asyncio as aioredis
from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter

from storefront.config import Settings
from storefront.payments.stripe_client import configure_stripe
from storefront.resources import build_resources


async def _init_rate_limiting(app: FastAPI, settings: Settings, logger: logging.Logger) -> bool:
    """Retourne True si FastAPILimiter a été initialisé (connexion Redis à fermer)."""
    if not settings.rate_limit_enabled:
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return False
    try:
        r = aioredis.from_url(settings.rate_limit_redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(r)
        app.state.rate_limit_enabled = True
        logger.info("Rate limiting enabled")
        return True
    except Exception as e:
        app.state.rate_limit_enabled = False
        if settings.local_rate_limit_fallback:
            logger.warning("Rate limiting falling back to local in-memory due to init error: %s", e)
        else:
            logger.warning("Rate limiting disabled due to init error: %s", e)
        return False


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("uvicorn.error")
    settings: Settings = app.state.settings

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required environment variables: %s", ", ".join(missing))
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    configure_stripe(settings)
    app.state.resources = build_resources(settings)
    app.state.started_at = time.monotonic()
    limiter_ready = await _init_rate_limiting(app, settings, logger)
    logger.info("Storefront started (environment=%s)", settings.environment)
    try:
        yield
    finally:
        if limiter_ready:
            await FastAPILimiter.close()
        app.state.resources.close()
        app.state.resources = None
        logger.info("Storefront stopped")
