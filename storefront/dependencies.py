"""
Dépendances FastAPI: exposent les collaborateurs du lifespan (app.state.resources).
Les tests les remplacent via app.dependency_overrides.
"""
from fastapi import Request

from storefront.config import Settings
from storefront.orders.repository import OrderRepository
from storefront.payments.service import PaymentService
from storefront.products.service import ProductCatalog
from storefront.resources import Resources
from storefront.webhooks.projection import OrderProjector


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_resources(request: Request) -> Resources:
    resources = getattr(request.app.state, "resources", None)
    if resources is None:
        raise RuntimeError("Resources non initialisées (lifespan non exécuté)")
    return resources


def get_payment_service(request: Request) -> PaymentService:
    return get_resources(request).payments


def get_product_catalog(request: Request) -> ProductCatalog:
    return get_resources(request).catalog


def get_order_repository(request: Request) -> OrderRepository:
    return get_resources(request).orders


def get_projector(request: Request) -> OrderProjector:
    return get_resources(request).projector
