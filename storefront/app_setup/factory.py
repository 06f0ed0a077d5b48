"""
Factory d'application utilisée par les entrypoints (storefront.asgi) et les tests.
"""
from typing import Optional

from fastapi import FastAPI

from storefront import __version__
from storefront.config import Settings, load_settings

from .exceptions import register_exception_handlers
from .lifespan import lifespan
from .middlewares import register_basic_middlewares, register_no_cache_middleware, register_security_middleware
from .routers import register_routers


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Construit l'app FastAPI avec le lifespan et enregistre:
      - middlewares (CORS, TrustedHost, en-têtes de sécurité, no-cache)
      - gestionnaires d'exceptions (enveloppe JSON)
      - tous les routers
    settings: injecté par les tests; sinon lu depuis l'environnement (.env).
    """
    settings = settings or load_settings()
    app = FastAPI(title="Storefront API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limit_enabled = False
    app.state.resources = None
    app.state.started_at = None
    register_basic_middlewares(app, settings)
    register_security_middleware(app)
    register_no_cache_middleware(app)
    register_exception_handlers(app)
    register_routers(app)
    return app
