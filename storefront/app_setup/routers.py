"""
Registre central des routers (payments, webhooks, produits, commandes, health).
"""
from fastapi import FastAPI

from storefront.health.router import router as health_router
from storefront.orders import views as orders_views
from storefront.payments import views as payments_views
from storefront.products import views as products_views
from storefront.webhooks import views as webhooks_views


def register_routers(app: FastAPI) -> None:
    # Paiements et webhook Stripe
    app.include_router(payments_views.router)
    app.include_router(webhooks_views.router)
    # Catalogue et commandes
    app.include_router(products_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
