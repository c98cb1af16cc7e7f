"""
Customer routes: phone-based registration and merchant-side customer stats.
"""

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_restaurant_or_404, get_scope
from qrar.database import get_db
from qrar.models import RestaurantUser, User
from qrar.schemas import RestaurantCustomerResponse, UserRegister, UserRegisterResponse, UserResponse
from qrar.services import analytics
from qrar.services.orders import record_visit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Customers"])


@router.get("", response_model=List[RestaurantCustomerResponse])
async def list_customers(scope: TenantScope = Depends(get_scope)) -> List[RestaurantCustomerResponse]:
    """Customers who visited this restaurant, with their visit history."""
    result = await scope.db.execute(
        select(User, RestaurantUser)
        .join(RestaurantUser, RestaurantUser.user_id == User.id)
        .where(RestaurantUser.restaurant_id == scope.restaurant_id)
        .order_by(User.id)
    )
    return [
        RestaurantCustomerResponse(
            id=user.id,
            name=user.name,
            phone=user.phone,
            dob=user.dob,
            created_at=user.created_at,
            last_visit=visit.last_visit,
            visit_count=visit.visit_count,
        )
        for user, visit in result.all()
    ]


@router.get("/total")
async def get_total_customers(scope: TenantScope = Depends(get_scope)) -> dict[str, int]:
    return {"total_users": await analytics.total_customers(scope.db, scope.restaurant_id)}


@router.get("/age-groups")
async def get_age_groups(scope: TenantScope = Depends(get_scope)) -> dict[str, Any]:
    return await analytics.customers_by_age_group(scope.db, scope.restaurant_id)


@router.post(
    "/{restaurant_id}",
    response_model=UserRegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": UserRegisterResponse, "description": "Phone already registered"}},
)
async def register_customer(
    restaurant_id: int,
    data: UserRegister,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> UserRegisterResponse:
    """
    Register a customer by phone number, or log an existing one in.

    Either way the customer's visit at this restaurant is recorded.
    """
    await get_restaurant_or_404(db, restaurant_id)

    result = await db.execute(select(User).where(User.phone == data.phone))
    user = result.scalar_one_or_none()

    if user is not None:
        await record_visit(db, user.id, restaurant_id)
        await db.commit()
        response.status_code = status.HTTP_200_OK
        logger.info(f"Customer #{user.id} returned to restaurant #{restaurant_id}")
        return UserRegisterResponse(
            message="User already registered. Logging in...",
            user=UserResponse.model_validate(user),
            customer_identifier=user.id,
        )

    user = User(name=data.name, phone=data.phone, dob=data.dob)
    db.add(user)
    await db.flush()
    await record_visit(db, user.id, restaurant_id)
    await db.commit()

    logger.info(f"Customer #{user.id} registered at restaurant #{restaurant_id}")
    return UserRegisterResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
        customer_identifier=user.id,
    )
