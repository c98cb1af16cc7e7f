"""
Menu category routes.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_media_service, get_scope, media_folder, parse_form, upload_image
from qrar.database import get_db
from qrar.models import Category
from qrar.schemas import CategoryCreate, CategoryResponse, MessageResponse
from qrar.services.media import BaseMediaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["Menu"])


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    cat_name: str = Form(...),
    price: Optional[float] = Form(None),
    img: UploadFile = File(...),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> CategoryResponse:
    data = parse_form(CategoryCreate, cat_name=cat_name, price=price)
    url = await upload_image(img, media, media_folder(scope.restaurant, "categories"))

    category = Category(restaurant_id=scope.restaurant_id, img=url, **data.model_dump())
    scope.db.add(category)
    await scope.db.commit()

    logger.info(f"Category #{category.id} '{category.cat_name}' created for restaurant #{scope.restaurant_id}")
    return CategoryResponse.model_validate(category)


@router.get("", response_model=List[CategoryResponse])
async def list_categories(scope: TenantScope = Depends(get_scope)) -> List[CategoryResponse]:
    categories = await scope.list(Category)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get("/restaurant/{restaurant_id}", response_model=List[CategoryResponse])
async def list_public_categories(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[CategoryResponse]:
    result = await db.execute(
        select(Category).where(Category.restaurant_id == restaurant_id).order_by(Category.id)
    )
    return [CategoryResponse.model_validate(c) for c in result.scalars().all()]


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: int, scope: TenantScope = Depends(get_scope)) -> CategoryResponse:
    category = await scope.get_or_404(Category, category_id)
    return CategoryResponse.model_validate(category)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    cat_name: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    img: Optional[UploadFile] = File(None),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> CategoryResponse:
    """Update name, price and optionally replace the image."""
    category = await scope.get_or_404(Category, category_id)
    data = parse_form(
        CategoryCreate,
        cat_name=cat_name if cat_name is not None else category.cat_name,
        price=price if price is not None else category.price,
    )
    category.cat_name = data.cat_name
    category.price = data.price
    if img is not None and img.filename:
        category.img = await upload_image(img, media, media_folder(scope.restaurant, "categories"))

    await scope.db.commit()
    await scope.db.refresh(category)
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(category_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    """Delete a category together with its products."""
    category = await scope.get_or_404(Category, category_id)
    product_count = len(category.products)
    await scope.db.delete(category)
    await scope.db.commit()

    logger.info(f"Category #{category_id} deleted with {product_count} product(s)")
    return MessageResponse(message="Category and its products deleted successfully")
