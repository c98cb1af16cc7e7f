"""
Dashboard Analytics

Aggregations behind the merchant dashboard: revenue, product sales, order
counts, popular products and customer age groups. Only Served orders count
towards revenue and sales.

Grouping by calendar day or month is done in Python over the selected
rows so the same code runs on PostgreSQL and SQLite.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.models import Order, OrderItem, OrderStatus, Product, RestaurantUser, User
from qrar.services.pricing import round2

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 3
POPULAR_WINDOW = timedelta(days=7)


class DateRange(str, enum.Enum):
    LAST_24H = "24h"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


def get_range_start(date_range: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Start of the reporting window, or None for an unknown range.

    24h and week are rolling windows; month and year start at the first
    instant of the current calendar month or year (UTC).
    """
    now = now or datetime.now(timezone.utc)
    if date_range == DateRange.LAST_24H:
        return now - timedelta(hours=24)
    if date_range == DateRange.WEEK:
        return now - timedelta(weeks=1)
    if date_range == DateRange.MONTH:
        return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if date_range == DateRange.YEAR:
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return None


def _served_since(restaurant_id: int, start: Optional[datetime]):
    conditions = [Order.restaurant_id == restaurant_id, Order.status == OrderStatus.SERVED]
    if start is not None:
        conditions.append(Order.created_at >= start)
    return conditions


async def total_profit(db: AsyncSession, restaurant_id: int, date_range: str, start: datetime) -> dict[str, Any]:
    """Revenue of Served orders with a per-day (week, month) or per-month (year) breakdown."""
    result = await db.execute(
        select(Order.final_total, Order.created_at)
        .where(*_served_since(restaurant_id, start))
        .order_by(Order.created_at)
    )
    rows = result.all()

    daily: "OrderedDict[str, float]" = OrderedDict()
    monthly: "OrderedDict[int, float]" = OrderedDict()
    for final_total, created_at in rows:
        if date_range in (DateRange.WEEK, DateRange.MONTH):
            key = created_at.date().isoformat()
            daily[key] = daily.get(key, 0.0) + final_total
        elif date_range == DateRange.YEAR:
            monthly[created_at.month] = monthly.get(created_at.month, 0.0) + final_total

    return {
        "total_profit": round2(sum(total for total, _ in rows)),
        "daily_data": [{"day": day, "total_profit": round2(v)} for day, v in daily.items()],
        "monthly_data": [{"month": month, "total_profit": round2(v)} for month, v in monthly.items()],
    }


async def _quantities_by_product(db: AsyncSession, restaurant_id: int, start: Optional[datetime], limit: Optional[int] = None):
    quantity = func.sum(OrderItem.quantity).label("total_quantity")
    stmt = (
        select(Product.id, Product.name, Product.img, Product.price, Product.category_id, quantity)
        .join(OrderItem, OrderItem.product_id == Product.id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(*_served_since(restaurant_id, start))
        .group_by(Product.id, Product.name, Product.img, Product.price, Product.category_id)
        .order_by(quantity.desc(), Product.id)
    )
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await db.execute(stmt)
    return result.all()


async def product_sales(db: AsyncSession, restaurant_id: int, start: datetime) -> list[dict[str, Any]]:
    """Quantity sold per product, highest first."""
    rows = await _quantities_by_product(db, restaurant_id, start)
    return [
        {
            "product_id": row.id,
            "product_name": row.name,
            "total_quantity": int(row.total_quantity),
            "price": row.price,
        }
        for row in rows
    ]


async def order_count(db: AsyncSession, restaurant_id: int, start: datetime) -> dict[str, Any]:
    """Served order count plus a count for every status in the window."""
    result = await db.execute(
        select(Order.status, func.count(Order.id))
        .where(Order.restaurant_id == restaurant_id, Order.created_at >= start)
        .group_by(Order.status)
    )
    by_status = {status.value: 0 for status in OrderStatus}
    for status, count in result.all():
        by_status[OrderStatus(status).value] = count

    return {
        "order_count": by_status[OrderStatus.SERVED.value],
        "by_status": by_status,
    }


async def top_products(db: AsyncSession, restaurant_id: int, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """
    Three best sellers of the last seven days.

    Falls back to all-time best sellers, flagged with ``is_fallback``, when
    nothing was served in the window.
    """
    now = now or datetime.now(timezone.utc)
    rows = await _quantities_by_product(db, restaurant_id, now - POPULAR_WINDOW, TOP_PRODUCTS_LIMIT)
    is_fallback = False
    if not rows:
        logger.debug(f"Restaurant #{restaurant_id}: no served orders this week, using all-time top products")
        rows = await _quantities_by_product(db, restaurant_id, None, TOP_PRODUCTS_LIMIT)
        is_fallback = True

    return [
        {
            "product_id": row.id,
            "product_name": row.name,
            "product_image": row.img,
            "category_id": row.category_id,
            "total_quantity": int(row.total_quantity),
            "is_fallback": is_fallback,
        }
        for row in rows
    ]


def age_on(dob: date, today: date) -> int:
    """Whole years between ``dob`` and ``today``."""
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


def age_group(age: int) -> str:
    if age <= 27:
        return "Gen Z"
    if age <= 42:
        return "Millennials"
    return "Gen X"


async def total_customers(db: AsyncSession, restaurant_id: int) -> int:
    result = await db.execute(
        select(func.count(RestaurantUser.id)).where(RestaurantUser.restaurant_id == restaurant_id)
    )
    return result.scalar() or 0


async def customers_by_age_group(db: AsyncSession, restaurant_id: int, today: Optional[date] = None) -> dict[str, int]:
    """Count a restaurant's customers per generation. Empty groups are omitted."""
    today = today or datetime.now(timezone.utc).date()
    result = await db.execute(
        select(User.dob)
        .join(RestaurantUser, RestaurantUser.user_id == User.id)
        .where(RestaurantUser.restaurant_id == restaurant_id)
    )

    groups: dict[str, int] = {}
    for dob in result.scalars():
        group = age_group(age_on(dob, today))
        groups[group] = groups.get(group, 0) + 1
    return groups
