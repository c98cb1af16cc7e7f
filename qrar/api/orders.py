"""
Order routes.

Customer-facing (no auth): place an order, read own order history, popular
products. Merchant-facing (bearer token): order lists, status updates and
dashboard analytics.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_restaurant_or_404, get_scope
from qrar.database import get_db
from qrar.models import Order, OrderStatus
from qrar.schemas import (
    OrderCreate,
    OrderPlacedResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
)
from qrar.services import analytics
from qrar.services.notifications import build_order_links
from qrar.services.order_workflow import InvalidStatusTransition
from qrar.services.orders import OrderValidationError, place_order, update_status
from qrar.services.realtime import ORDER_CREATED, ORDER_UPDATED, BaseEventBroker, OrderEvent, get_event_broker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


def _range_start(date_range: Optional[str]) -> datetime:
    start = analytics.get_range_start(date_range) if date_range else None
    if start is None:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid date range. Options: {[r.value for r in analytics.DateRange]}",
        )
    return start


# =============================================================================
# MERCHANT: LISTS
# =============================================================================

@router.get("", response_model=List[OrderResponse])
async def list_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    scope: TenantScope = Depends(get_scope),
) -> List[OrderResponse]:
    """All of the restaurant's orders, newest first."""
    criteria = [Order.status == order_status] if order_status is not None else []
    orders = await scope.list(Order, *criteria, order_by=Order.created_at.desc())
    return [OrderResponse.from_order(o) for o in orders]


@router.get("/pending", response_model=List[OrderResponse])
async def list_pending_orders(
    date_range: Optional[str] = Query(None),
    scope: TenantScope = Depends(get_scope),
) -> List[OrderResponse]:
    start = _range_start(date_range)
    orders = await scope.list(
        Order,
        Order.status == OrderStatus.PENDING,
        Order.created_at >= start,
        order_by=Order.created_at.desc(),
    )
    return [OrderResponse.from_order(o) for o in orders]


@router.get("/history", response_model=List[OrderResponse])
async def list_order_history(
    date_range: Optional[str] = Query(None),
    scope: TenantScope = Depends(get_scope),
) -> List[OrderResponse]:
    """Served orders last updated within the range."""
    start = _range_start(date_range)
    orders = await scope.list(
        Order,
        Order.status == OrderStatus.SERVED,
        Order.updated_at >= start,
        order_by=Order.updated_at.desc(),
    )
    return [OrderResponse.from_order(o) for o in orders]


# =============================================================================
# MERCHANT: ANALYTICS
# =============================================================================

@router.get("/analytics/total-profit")
async def get_total_profit(
    date_range: Optional[str] = Query(None),
    scope: TenantScope = Depends(get_scope),
) -> dict[str, Any]:
    start = _range_start(date_range)
    data = await analytics.total_profit(scope.db, scope.restaurant_id, date_range, start)
    return {"date_range": date_range, "data": data}


@router.get("/analytics/product-sales")
async def get_product_sales(
    date_range: Optional[str] = Query(None),
    scope: TenantScope = Depends(get_scope),
) -> List[dict[str, Any]]:
    start = _range_start(date_range)
    return await analytics.product_sales(scope.db, scope.restaurant_id, start)


@router.get("/analytics/order-count")
async def get_order_count(
    date_range: Optional[str] = Query(None),
    scope: TenantScope = Depends(get_scope),
) -> dict[str, Any]:
    start = _range_start(date_range)
    counts = await analytics.order_count(scope.db, scope.restaurant_id, start)
    return {"date_range": date_range, **counts}


# =============================================================================
# CUSTOMER-FACING
# =============================================================================

@router.get("/top-products/{restaurant_id}")
async def get_top_products(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[dict[str, Any]]:
    return await analytics.top_products(db, restaurant_id)


@router.get("/restaurant/{restaurant_id}/customer/{customer_id}", response_model=List[OrderResponse])
async def list_customer_orders(
    restaurant_id: int,
    customer_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[OrderResponse]:
    """A customer's orders at one restaurant, newest first."""
    result = await db.execute(
        select(Order)
        .where(Order.restaurant_id == restaurant_id, Order.customer_id == customer_id)
        .order_by(Order.created_at.desc())
    )
    return [OrderResponse.from_order(o) for o in result.scalars().all()]


@router.post(
    "/{restaurant_id}",
    response_model=OrderPlacedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_order(
    restaurant_id: int,
    order_data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    broker: BaseEventBroker = Depends(get_event_broker),
) -> OrderPlacedResponse:
    """
    Place an order.

    Prices, tax and totals are computed server-side from the restaurant's
    menu and tax configuration. The dashboard is notified with an
    order:created event.
    """
    if not order_data.items:
        raise HTTPException(status_code=400, detail="Order must contain at least one item")

    restaurant = await get_restaurant_or_404(db, restaurant_id)
    try:
        order = await place_order(db, restaurant, order_data)
    except OrderValidationError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    links = build_order_links(order, restaurant, order.customer)
    response = OrderPlacedResponse(
        message="Order placed successfully",
        order=OrderResponse.from_order(order),
        **links.to_dict(),
    )

    event_data = response.order.model_dump(mode="json")
    event_data.update(links.to_dict())
    await broker.publish_safely(OrderEvent(ORDER_CREATED, restaurant.id, event_data))

    return response


# =============================================================================
# MERCHANT: SINGLE ORDER
# =============================================================================

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, scope: TenantScope = Depends(get_scope)) -> OrderResponse:
    order = await scope.get_or_404(Order, order_id)
    return OrderResponse.from_order(order)


@router.patch("/{order_id}/status", response_model=OrderStatusResponse)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    scope: TenantScope = Depends(get_scope),
    broker: BaseEventBroker = Depends(get_event_broker),
) -> OrderStatusResponse:
    """Advance an order: Pending -> Preparing -> Served, or Pending -> Rejected."""
    order = await scope.get_or_404(Order, order_id)
    try:
        order = await update_status(scope.db, order, data.status)
    except InvalidStatusTransition as e:
        raise HTTPException(status_code=400, detail=str(e))

    payload = OrderResponse.from_order(order)
    await broker.publish_safely(
        OrderEvent(ORDER_UPDATED, scope.restaurant_id, payload.model_dump(mode="json"))
    )
    return OrderStatusResponse(message="Order status updated successfully.", order=payload)
