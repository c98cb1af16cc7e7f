"""
Combo deal routes: two products, two categories, or a product with a category.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from qrar.api.deps import TenantScope, get_media_service, get_scope, media_folder, parse_form, upload_image
from qrar.models import Category, ComboDeal, Product
from qrar.schemas import COMBO_REFERENCE_FIELDS, ComboDealCreate, ComboDealResponse, MessageResponse
from qrar.services.media import BaseMediaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/combo-deals", tags=["Loyalty"])


async def _check_references(scope: TenantScope, data: ComboDealCreate) -> None:
    for product_id in data.referenced_products():
        if not await scope.exists(Product, product_id):
            raise HTTPException(status_code=400, detail=f"Product #{product_id} does not belong to this restaurant")
    for category_id in data.referenced_categories():
        if not await scope.exists(Category, category_id):
            raise HTTPException(status_code=400, detail=f"Category #{category_id} does not belong to this restaurant")


@router.post("", response_model=ComboDealResponse, status_code=status.HTTP_201_CREATED)
async def create_combo_deal(
    title: str = Form(...),
    deal_type: str = Form(...),
    offer_type: str = Form(...),
    offer_value: Optional[float] = Form(None),
    product1_id: Optional[int] = Form(None),
    product2_id: Optional[int] = Form(None),
    category1_id: Optional[int] = Form(None),
    category2_id: Optional[int] = Form(None),
    product_id: Optional[int] = Form(None),
    category_id: Optional[int] = Form(None),
    image: Optional[UploadFile] = File(None),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> ComboDealResponse:
    data = parse_form(
        ComboDealCreate,
        title=title,
        deal_type=deal_type,
        offer_type=offer_type,
        offer_value=offer_value,
        product1_id=product1_id,
        product2_id=product2_id,
        category1_id=category1_id,
        category2_id=category2_id,
        product_id=product_id,
        category_id=category_id,
    )
    await _check_references(scope, data)

    deal = ComboDeal(restaurant_id=scope.restaurant_id, **data.model_dump())
    if image is not None and image.filename:
        deal.image = await upload_image(image, media, media_folder(scope.restaurant, "combo-deals"))
    scope.db.add(deal)
    await scope.db.commit()

    logger.info(f"Combo deal #{deal.id} ({deal.deal_type.value}) created for restaurant #{scope.restaurant_id}")
    return ComboDealResponse.model_validate(deal)


@router.get("", response_model=List[ComboDealResponse])
async def list_combo_deals(scope: TenantScope = Depends(get_scope)) -> List[ComboDealResponse]:
    deals = await scope.list(ComboDeal, order_by=ComboDeal.created_at.desc())
    return [ComboDealResponse.model_validate(d) for d in deals]


@router.get("/{deal_id}", response_model=ComboDealResponse)
async def get_combo_deal(deal_id: int, scope: TenantScope = Depends(get_scope)) -> ComboDealResponse:
    return ComboDealResponse.model_validate(await scope.get_or_404(ComboDeal, deal_id, "Combo deal"))


@router.put("/{deal_id}", response_model=ComboDealResponse)
async def update_combo_deal(
    deal_id: int,
    title: Optional[str] = Form(None),
    deal_type: Optional[str] = Form(None),
    offer_type: Optional[str] = Form(None),
    offer_value: Optional[float] = Form(None),
    product1_id: Optional[int] = Form(None),
    product2_id: Optional[int] = Form(None),
    category1_id: Optional[int] = Form(None),
    category2_id: Optional[int] = Form(None),
    product_id: Optional[int] = Form(None),
    category_id: Optional[int] = Form(None),
    image: Optional[UploadFile] = File(None),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> ComboDealResponse:
    """
    Update a deal. Changing the deal type takes the references from this
    request; otherwise unspecified references keep their current values.
    """
    deal = await scope.get_or_404(ComboDeal, deal_id, "Combo deal")
    submitted = {
        "product1_id": product1_id,
        "product2_id": product2_id,
        "category1_id": category1_id,
        "category2_id": category2_id,
        "product_id": product_id,
        "category_id": category_id,
    }
    new_type = deal_type or deal.deal_type.value
    if new_type == deal.deal_type.value:
        references = {
            name: submitted[name] if submitted[name] is not None else getattr(deal, name)
            for name in COMBO_REFERENCE_FIELDS
        }
    else:
        references = submitted

    data = parse_form(
        ComboDealCreate,
        title=title or deal.title,
        deal_type=new_type,
        offer_type=offer_type or deal.offer_type.value,
        offer_value=offer_value if offer_value is not None else deal.offer_value,
        is_active=deal.is_active,
        **references,
    )
    await _check_references(scope, data)

    for field, value in data.model_dump().items():
        setattr(deal, field, value)
    if image is not None and image.filename:
        deal.image = await upload_image(image, media, media_folder(scope.restaurant, "combo-deals"))

    await scope.db.commit()
    await scope.db.refresh(deal)
    return ComboDealResponse.model_validate(deal)


@router.put("/{deal_id}/toggle", response_model=ComboDealResponse)
async def toggle_combo_deal(deal_id: int, scope: TenantScope = Depends(get_scope)) -> ComboDealResponse:
    deal = await scope.get_or_404(ComboDeal, deal_id, "Combo deal")
    deal.is_active = not deal.is_active
    await scope.db.commit()
    await scope.db.refresh(deal)
    return ComboDealResponse.model_validate(deal)


@router.delete("/{deal_id}", response_model=MessageResponse)
async def delete_combo_deal(deal_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    deal = await scope.get_or_404(ComboDeal, deal_id, "Combo deal")
    await scope.db.delete(deal)
    await scope.db.commit()
    return MessageResponse(message="Combo deal deleted successfully")
