"""
Restaurant account routes: registration, login, profile and public info.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import (
    get_current_restaurant,
    get_media_service,
    get_restaurant_or_404,
    media_folder,
    upload_image,
)
from qrar.core.config import get_settings
from qrar.core.security import create_access_token, hash_password, verify_password
from qrar.database import get_db
from qrar.models import Category, Restaurant
from qrar.schemas import (
    MenuCategoryResponse,
    PublicRestaurantResponse,
    RestaurantLogin,
    RestaurantRegister,
    RestaurantResponse,
    RestaurantUpdate,
    TokenResponse,
)
from qrar.services.media import BaseMediaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/restaurants", tags=["Restaurants"])


@router.post("/register", response_model=RestaurantResponse, status_code=status.HTTP_201_CREATED)
async def register_restaurant(
    data: RestaurantRegister,
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    """Create a merchant account."""
    email = data.email.lower()
    existing = await db.execute(select(Restaurant.id).where(Restaurant.email == email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="Email already registered")

    restaurant = Restaurant(
        name=data.name,
        email=email,
        password_hash=hash_password(data.password),
        number=data.number,
        address=data.address,
        tax_type=data.tax_type,
        tax_percentage=data.tax_percentage,
    )
    db.add(restaurant)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=400, detail="Email already registered")

    logger.info(f"Restaurant registered: #{restaurant.id} {restaurant.name}")
    return RestaurantResponse.model_validate(restaurant)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: RestaurantLogin,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    result = await db.execute(select(Restaurant).where(Restaurant.email == data.email.lower()))
    restaurant = result.scalar_one_or_none()

    if restaurant is None or not verify_password(data.password, restaurant.password_hash):
        logger.info(f"Failed login for {data.email}")
        raise HTTPException(status_code=400, detail="Invalid email or password")

    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(restaurant.id, restaurant.email),
        expires_in=settings.jwt_expire_minutes * 60,
        restaurant=RestaurantResponse.model_validate(restaurant),
    )


@router.get("/me", response_model=RestaurantResponse)
async def get_dashboard_profile(
    restaurant: Restaurant = Depends(get_current_restaurant),
) -> RestaurantResponse:
    return RestaurantResponse.model_validate(restaurant)


@router.put("/me", response_model=RestaurantResponse)
async def update_profile(
    data: RestaurantUpdate,
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> RestaurantResponse:
    """Update profile fields and tax configuration. New orders use the new tax settings."""
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(restaurant, field, value)
    await db.commit()
    await db.refresh(restaurant)
    return RestaurantResponse.model_validate(restaurant)


@router.put("/me/profile-image", response_model=RestaurantResponse)
async def update_profile_image(
    img: UploadFile = File(...),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
    media: BaseMediaService = Depends(get_media_service),
) -> RestaurantResponse:
    restaurant.profile_image = await upload_image(img, media, media_folder(restaurant, "profile"))
    await db.commit()
    await db.refresh(restaurant)
    return RestaurantResponse.model_validate(restaurant)


@router.put("/me/banner-image", response_model=RestaurantResponse)
async def update_banner_image(
    img: UploadFile = File(...),
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
    media: BaseMediaService = Depends(get_media_service),
) -> RestaurantResponse:
    restaurant.banner_image = await upload_image(img, media, media_folder(restaurant, "banner"))
    await db.commit()
    await db.refresh(restaurant)
    return RestaurantResponse.model_validate(restaurant)


# =============================================================================
# PUBLIC (customer app)
# =============================================================================

@router.get("/{restaurant_id}", response_model=PublicRestaurantResponse)
async def get_public_restaurant(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> PublicRestaurantResponse:
    restaurant = await get_restaurant_or_404(db, restaurant_id)
    return PublicRestaurantResponse.model_validate(restaurant)


@router.get("/{restaurant_id}/menu", response_model=List[MenuCategoryResponse])
async def get_menu(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[MenuCategoryResponse]:
    """Categories with their products. Empty list for an unknown restaurant."""
    result = await db.execute(
        select(Category).where(Category.restaurant_id == restaurant_id).order_by(Category.id)
    )
    return [MenuCategoryResponse.model_validate(c) for c in result.scalars().all()]
