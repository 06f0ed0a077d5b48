from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from storefront.dependencies import get_order_repository
from storefront.errors import NotFound
from storefront.utils.responses import ok
from storefront.utils.security import require_admin

from .repository import OrderRepository

router = APIRouter(prefix="/api/orders", tags=["Orders"], dependencies=[Depends(require_admin)])


# module storefront.orders.views
@router.get("")
async def list_orders(
    email: Optional[str] = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    repo: OrderRepository = Depends(get_order_repository),
):
    """Liste des commandes (plus récentes d'abord), filtre optionnel par email client."""
    orders = await run_in_threadpool(repo.list_orders, email, limit)
    return ok(data=[o.to_api() for o in orders], total=len(orders))


@router.get("/{order_id}")
async def get_order(order_id: str, repo: OrderRepository = Depends(get_order_repository)):
    order = await run_in_threadpool(repo.get_order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return ok(data=order.to_api())
