"""
Menu product routes.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_media_service, get_scope, media_folder, parse_form, upload_image
from qrar.database import get_db
from qrar.models import Category, Product
from qrar.schemas import MessageResponse, ProductCreate, ProductResponse
from qrar.services.media import BaseMediaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Menu"])


async def _require_own_category(scope: TenantScope, category_id: int) -> None:
    if not await scope.exists(Category, category_id):
        raise HTTPException(status_code=400, detail=f"Category #{category_id} does not belong to this restaurant")


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    name: str = Form(...),
    category_id: int = Form(...),
    price: float = Form(...),
    description: Optional[str] = Form(None),
    tax_rate: Optional[float] = Form(None),
    img: UploadFile = File(...),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> ProductResponse:
    data = parse_form(
        ProductCreate,
        name=name,
        category_id=category_id,
        price=price,
        description=description,
        tax_rate=tax_rate,
    )
    await _require_own_category(scope, data.category_id)
    url = await upload_image(img, media, media_folder(scope.restaurant, "products"))

    product = Product(restaurant_id=scope.restaurant_id, img=url, **data.model_dump())
    scope.db.add(product)
    await scope.db.commit()

    logger.info(f"Product #{product.id} '{product.name}' created for restaurant #{scope.restaurant_id}")
    return ProductResponse.model_validate(product)


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category_id: Optional[int] = Query(None),
    scope: TenantScope = Depends(get_scope),
) -> List[ProductResponse]:
    criteria = [Product.category_id == category_id] if category_id is not None else []
    products = await scope.list(Product, *criteria)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/restaurant/{restaurant_id}", response_model=List[ProductResponse])
async def list_public_products(
    restaurant_id: int,
    category_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[ProductResponse]:
    stmt = select(Product).where(Product.restaurant_id == restaurant_id)
    if category_id is not None:
        stmt = stmt.where(Product.category_id == category_id)
    result = await db.execute(stmt.order_by(Product.id))
    return [ProductResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, scope: TenantScope = Depends(get_scope)) -> ProductResponse:
    product = await scope.get_or_404(Product, product_id)
    return ProductResponse.model_validate(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    name: Optional[str] = Form(None),
    category_id: Optional[int] = Form(None),
    price: Optional[float] = Form(None),
    description: Optional[str] = Form(None),
    tax_rate: Optional[float] = Form(None),
    img: Optional[UploadFile] = File(None),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> ProductResponse:
    """Update any subset of fields; past orders keep their price snapshot."""
    product = await scope.get_or_404(Product, product_id)
    data = parse_form(
        ProductCreate,
        name=name if name is not None else product.name,
        category_id=category_id if category_id is not None else product.category_id,
        price=price if price is not None else product.price,
        description=description if description is not None else product.description,
        tax_rate=tax_rate if tax_rate is not None else product.tax_rate,
    )
    if data.category_id != product.category_id:
        await _require_own_category(scope, data.category_id)

    for field, value in data.model_dump().items():
        setattr(product, field, value)
    if img is not None and img.filename:
        product.img = await upload_image(img, media, media_folder(scope.restaurant, "products"))

    await scope.db.commit()
    await scope.db.refresh(product)
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(product_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    product = await scope.get_or_404(Product, product_id)
    await scope.db.delete(product)
    await scope.db.commit()

    logger.info(f"Product #{product_id} deleted from restaurant #{scope.restaurant_id}")
    return MessageResponse(message="Product deleted successfully")
