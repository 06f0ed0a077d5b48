from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from storefront.dependencies import get_product_catalog
from storefront.errors import InvalidArgument
from storefront.utils.responses import ok
from storefront.utils.security import require_admin

from .service import ProductCatalog

router = APIRouter(prefix="/api/products", tags=["Products"])


# module storefront.products.views
@router.get("")
async def list_products(catalog: ProductCatalog = Depends(get_product_catalog)):
    """Catalogue complet avec reviewCount; `cached` indique une réponse servie depuis le cache."""
    products, cached = await run_in_threadpool(catalog.list_products)
    return ok(data=products, cached=cached)


@router.get("/{slug}")
async def get_product(slug: str, catalog: ProductCatalog = Depends(get_product_catalog)):
    product = await run_in_threadpool(catalog.get_by_slug, slug)
    return ok(data=product)


@router.put("/{product_id}/price", dependencies=[Depends(require_admin)])
async def update_price(product_id: str, request: Request, catalog: ProductCatalog = Depends(get_product_catalog)):
    """
    Mise à jour admin du prix (centimes).
    - Entrée JSON: {"price": 2995}
    """
    try:
        body = await request.json()
    except ValueError:
        raise InvalidArgument("Invalid JSON body")
    price = body.get("price") if isinstance(body, dict) else None
    product = await run_in_threadpool(catalog.update_price, product_id, price)
    return ok(data=product)
