"""
Per-restaurant daily order numbers.

Numbers restart at 1 every business day (the calendar day in
ORDER_NUMBER_TIMEZONE). Allocation is one INSERT ... ON CONFLICT DO UPDATE
... RETURNING statement against ``order_counters``, so concurrent orders
never share a number. The counter row is written inside the caller's
transaction: if the order insert rolls back, so does the increment, which
keeps the sequence gap-free.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.ext.asyncio import AsyncSession

from qrar.core.config import get_settings
from qrar.models import OrderCounter

logger = logging.getLogger(__name__)


def business_date(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """Calendar date of ``now`` (default: current time) in the order-number timezone."""
    tz = ZoneInfo(tz_name or get_settings().order_number_timezone)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def _dialect_insert(dialect_name: str):
    if dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise NotImplementedError(f"Order numbering is not supported on {dialect_name}")
    return insert


async def next_order_number(
    db: AsyncSession,
    restaurant_id: int,
    on_date: Optional[date] = None,
) -> int:
    """
    Allocate the next order number for a restaurant.

    Args:
        db: Session whose transaction will also insert the order
        restaurant_id: Restaurant placing the order
        on_date: Business date override (defaults to today)

    Returns:
        int: 1 for the first order of the day, then 2, 3, ...
    """
    on_date = on_date or business_date()
    insert = _dialect_insert(db.get_bind().dialect.name)

    stmt = (
        insert(OrderCounter)
        .values(restaurant_id=restaurant_id, business_date=on_date, last_number=1)
        .on_conflict_do_update(
            index_elements=[OrderCounter.restaurant_id, OrderCounter.business_date],
            set_={"last_number": OrderCounter.last_number + 1},
        )
        .returning(OrderCounter.last_number)
    )
    result = await db.execute(stmt)
    number = result.scalar_one()

    logger.debug(f"Restaurant #{restaurant_id}: order number {number} for {on_date}")
    return number
