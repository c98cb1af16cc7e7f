"""
Coupon code routes.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_restaurant_or_404, get_scope
from qrar.database import get_db
from qrar.models import CouponCode, CouponDiscountType, CouponType, as_utc, utc_now
from qrar.schemas import CouponApply, CouponApplyResponse, CouponCreate, CouponResponse, MessageResponse
from qrar.services.pricing import round2

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["Loyalty"])


@router.post("", response_model=CouponResponse, status_code=status.HTTP_201_CREATED)
async def create_coupon(data: CouponCreate, scope: TenantScope = Depends(get_scope)) -> CouponResponse:
    existing = await scope.db.execute(
        scope.select(CouponCode).where(CouponCode.code == data.code)
    )
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail=f"Coupon code {data.code!r} already exists")

    coupon = CouponCode(restaurant_id=scope.restaurant_id, is_active=True, **data.model_dump())
    scope.db.add(coupon)
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise HTTPException(status_code=400, detail=f"Coupon code {data.code!r} already exists")

    logger.info(f"Coupon {coupon.code} created for restaurant #{scope.restaurant_id}")
    return CouponResponse.model_validate(coupon)


@router.get("", response_model=List[CouponResponse])
async def list_coupons(scope: TenantScope = Depends(get_scope)) -> List[CouponResponse]:
    coupons = await scope.list(CouponCode, order_by=CouponCode.created_at.desc())
    return [CouponResponse.model_validate(c) for c in coupons]


@router.post("/restaurant/{restaurant_id}/apply", response_model=CouponApplyResponse)
async def apply_coupon(
    restaurant_id: int,
    data: CouponApply,
    db: AsyncSession = Depends(get_db),
) -> CouponApplyResponse:
    """
    Redeem a coupon against an order value.

    ``total-order`` coupons come off the order value; ``product`` coupons
    only apply when a product value is given. Each successful call counts
    as one redemption.
    """
    await get_restaurant_or_404(db, restaurant_id)
    result = await db.execute(
        select(CouponCode).where(
            CouponCode.restaurant_id == restaurant_id,
            CouponCode.code == data.code.strip(),
            CouponCode.is_active.is_(True),
        )
    )
    coupon = result.scalar_one_or_none()
    if coupon is None:
        raise HTTPException(status_code=400, detail="Invalid or inactive coupon")

    if coupon.type == CouponType.TIME_LIMITED and utc_now() > as_utc(coupon.expiry_date):
        raise HTTPException(status_code=400, detail="Coupon has expired")
    if coupon.type == CouponType.LIMITED_USERS and coupon.redeemed_users >= coupon.limit:
        raise HTTPException(status_code=400, detail="Coupon usage limit reached")

    if coupon.discount_type == CouponDiscountType.TOTAL_ORDER or data.product_value:
        discount = coupon.discount_value
    else:
        discount = 0.0
    final_price = max(round2(data.order_value - discount), 0.0)

    # Check and increment in one statement: redemptions never pass the limit
    redeemed = await db.execute(
        update(CouponCode)
        .where(
            CouponCode.id == coupon.id,
            or_(
                CouponCode.type != CouponType.LIMITED_USERS,
                CouponCode.redeemed_users < CouponCode.limit,
            ),
        )
        .values(redeemed_users=CouponCode.redeemed_users + 1)
        .returning(CouponCode.redeemed_users)
        .execution_options(synchronize_session=False)
    )
    uses = redeemed.scalar_one_or_none()
    if uses is None:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Coupon usage limit reached")
    await db.commit()

    logger.info(f"Coupon {coupon.code} redeemed at restaurant #{restaurant_id} ({uses} use(s))")
    return CouponApplyResponse(
        message="Coupon applied successfully",
        discount_amount=discount,
        final_price=final_price,
    )


@router.get("/{coupon_id}", response_model=CouponResponse)
async def get_coupon(coupon_id: int, scope: TenantScope = Depends(get_scope)) -> CouponResponse:
    return CouponResponse.model_validate(await scope.get_or_404(CouponCode, coupon_id, "Coupon"))


@router.put("/{coupon_id}/toggle", response_model=CouponResponse)
async def toggle_coupon(coupon_id: int, scope: TenantScope = Depends(get_scope)) -> CouponResponse:
    coupon = await scope.get_or_404(CouponCode, coupon_id, "Coupon")
    coupon.is_active = not coupon.is_active
    await scope.db.commit()
    await scope.db.refresh(coupon)
    return CouponResponse.model_validate(coupon)


@router.delete("/{coupon_id}", response_model=MessageResponse)
async def delete_coupon(coupon_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    coupon = await scope.get_or_404(CouponCode, coupon_id, "Coupon")
    await scope.db.delete(coupon)
    await scope.db.commit()
    return MessageResponse(message="Coupon deleted successfully")
