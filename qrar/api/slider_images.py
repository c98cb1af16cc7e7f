"""
Slider image routes for the customer app's home carousel.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_media_service, get_scope, media_folder, upload_image
from qrar.database import get_db
from qrar.models import Offer, SliderImage
from qrar.schemas import MessageResponse, SliderImageResponse
from qrar.services.media import BaseMediaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slider-images", tags=["Loyalty"])


async def _check_offer(scope: TenantScope, offer_id: Optional[int]) -> None:
    if offer_id is not None and not await scope.exists(Offer, offer_id):
        raise HTTPException(status_code=400, detail=f"Offer #{offer_id} does not belong to this restaurant")


@router.post("", response_model=SliderImageResponse, status_code=status.HTTP_201_CREATED)
async def create_slider_image(
    img: UploadFile = File(...),
    offer_id: Optional[int] = Form(None),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> SliderImageResponse:
    await _check_offer(scope, offer_id)
    url = await upload_image(img, media, media_folder(scope.restaurant, "slider"))
    slide = SliderImage(restaurant_id=scope.restaurant_id, img=url, offer_id=offer_id)
    scope.db.add(slide)
    await scope.db.commit()
    return SliderImageResponse.model_validate(slide)


@router.get("", response_model=List[SliderImageResponse])
async def list_slider_images(scope: TenantScope = Depends(get_scope)) -> List[SliderImageResponse]:
    slides = await scope.list(SliderImage)
    return [SliderImageResponse.model_validate(s) for s in slides]


@router.get("/restaurant/{restaurant_id}", response_model=List[SliderImageResponse])
async def list_public_slider_images(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> List[SliderImageResponse]:
    result = await db.execute(
        select(SliderImage).where(SliderImage.restaurant_id == restaurant_id).order_by(SliderImage.id)
    )
    return [SliderImageResponse.model_validate(s) for s in result.scalars().all()]


@router.put("/{slide_id}", response_model=SliderImageResponse)
async def update_slider_image(
    slide_id: int,
    img: Optional[UploadFile] = File(None),
    offer_id: Optional[int] = Form(None),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> SliderImageResponse:
    """Replace the image and/or link the slide to an offer."""
    slide = await scope.get_or_404(SliderImage, slide_id, "Slider image")
    if offer_id is not None:
        await _check_offer(scope, offer_id)
        slide.offer_id = offer_id
    if img is not None and img.filename:
        slide.img = await upload_image(img, media, media_folder(scope.restaurant, "slider"))

    await scope.db.commit()
    await scope.db.refresh(slide)
    return SliderImageResponse.model_validate(slide)


@router.delete("/{slide_id}", response_model=MessageResponse)
async def delete_slider_image(slide_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    slide = await scope.get_or_404(SliderImage, slide_id, "Slider image")
    await scope.db.delete(slide)
    await scope.db.commit()
    return MessageResponse(message="Slider image deleted successfully")
