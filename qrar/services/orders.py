"""
Order Placement & Status Updates

Turns a customer's order request into a persisted order:

    1. Reject an empty item list before any query runs
    2. Resolve the customer and the restaurant's products
    3. Price the order (services.pricing)
    4. Allocate the daily order number (services.order_numbers)
    5. Insert order + items, bump the customer's visit record, commit

Errors a customer can fix are raised as OrderValidationError (a
ValueError) and turned into HTTP 400 by the router.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.models import (
    Order,
    OrderItem,
    OrderStatus,
    Product,
    Restaurant,
    RestaurantUser,
    User,
    utc_now,
)
from qrar.schemas import OrderCreate
from qrar.services.order_numbers import next_order_number
from qrar.services.order_workflow import next_status
from qrar.services.pricing import PricedLine, compute_order_totals

logger = logging.getLogger(__name__)


class OrderValidationError(ValueError):
    """The order request cannot be placed as submitted."""


async def load_order(db: AsyncSession, order_id: int) -> Optional[Order]:
    """Fetch an order with its items and customer freshly loaded."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def record_visit(db: AsyncSession, user_id: int, restaurant_id: int) -> RestaurantUser:
    """Create or bump the customer's visit record for a restaurant."""
    result = await db.execute(
        select(RestaurantUser).where(
            RestaurantUser.user_id == user_id,
            RestaurantUser.restaurant_id == restaurant_id,
        )
    )
    visit = result.scalar_one_or_none()
    if visit is None:
        visit = RestaurantUser(user_id=user_id, restaurant_id=restaurant_id, visit_count=0)
        db.add(visit)
    visit.visit_count = (visit.visit_count or 0) + 1
    visit.last_visit = utc_now()
    return visit


async def place_order(db: AsyncSession, restaurant: Restaurant, order_data: OrderCreate) -> Order:
    """
    Validate, price and persist a new order.

    Args:
        db: Request session; committed on success
        restaurant: Restaurant the order is placed with
        order_data: Validated request body

    Returns:
        Order: The stored order with items and customer loaded

    Raises:
        OrderValidationError: Empty order, unknown customer, a product
            that does not belong to the restaurant, or a discount that
            leaves nothing to pay
    """
    if not order_data.items:
        raise OrderValidationError("Order must contain at least one item")

    customer = await db.get(User, order_data.customer_id)
    if customer is None:
        raise OrderValidationError(f"Customer #{order_data.customer_id} not found")

    product_ids = {item.product_id for item in order_data.items}
    result = await db.execute(
        select(Product).where(
            Product.id.in_(product_ids),
            Product.restaurant_id == restaurant.id,
        )
    )
    products = {product.id: product for product in result.scalars()}
    missing = sorted(product_ids - products.keys())
    if missing:
        raise OrderValidationError(f"Products not available at this restaurant: {missing}")

    order_items = []
    priced_lines = []
    for position, item in enumerate(order_data.items):
        product = products[item.product_id]
        tax_rate = item.tax_rate if item.tax_rate is not None else product.tax_rate
        priced_lines.append(PricedLine(price=product.price, quantity=item.quantity, tax_rate=tax_rate))
        order_items.append(
            OrderItem(
                product_id=product.id,
                position=position,
                quantity=item.quantity,
                unit_price=product.price,
                tax_rate=tax_rate or 0.0,
                product_name=product.name,
                product_image=product.img,
            )
        )

    totals = compute_order_totals(
        priced_lines,
        tax_type=restaurant.tax_type,
        restaurant_tax_rate=restaurant.tax_percentage,
        discount=order_data.discount,
    )
    if order_data.discount > totals.items_total:
        raise OrderValidationError(
            f"Discount {order_data.discount} exceeds the item total {totals.items_total}"
        )
    if totals.final_total <= 0:
        raise OrderValidationError("Order total must be greater than zero")

    order = Order(
        restaurant_id=restaurant.id,
        customer_id=customer.id,
        order_no=await next_order_number(db, restaurant.id),
        tax_type=restaurant.tax_type,
        exc_tax_rate=restaurant.tax_percentage,
        items_total=totals.items_total,
        discount=totals.discount,
        tax=totals.tax,
        service_charge=order_data.service_charge,
        packing_charge=order_data.packing_charge,
        delivery_charge=order_data.delivery_charge,
        final_total=totals.final_total,
        table_number=order_data.table_number,
        payment_method=order_data.payment_method,
        payment_status=order_data.payment_status,
        refund_status=order_data.refund_status,
        mode_of_order=order_data.mode_of_order,
        order_notes=order_data.order_notes,
        status=OrderStatus.PENDING,
        items=order_items,
    )
    db.add(order)
    await record_visit(db, customer.id, restaurant.id)
    await db.commit()

    logger.info(
        f"Order #{order.id} (No. {order.order_no}) placed at restaurant #{restaurant.id}: "
        f"{len(order_items)} item(s), total {order.final_total}"
    )
    return await load_order(db, order.id)


async def update_status(db: AsyncSession, order: Order, requested: OrderStatus) -> Order:
    """
    Move an order along the status workflow and commit.

    Raises:
        InvalidStatusTransition: The move is not allowed from the current status
    """
    previous = order.status
    order.status = next_status(order.status, requested)
    await db.commit()

    logger.info(f"Order #{order.id}: {previous.value} -> {order.status.value}")
    return await load_order(db, order.id)
