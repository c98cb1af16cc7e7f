"""
Pop-up image routes. A restaurant shows at most one pop-up at a time.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_media_service, get_scope, media_folder, upload_image
from qrar.database import get_db
from qrar.models import PopUpImage, Restaurant
from qrar.schemas import MessageResponse, PopUpResponse
from qrar.services.media import BaseMediaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/popups", tags=["Loyalty"])


async def _deactivate_all(scope: TenantScope) -> None:
    # Row lock serializes activations within one restaurant
    await scope.db.execute(
        select(Restaurant.id).where(Restaurant.id == scope.restaurant_id).with_for_update()
    )
    await scope.db.execute(
        update(PopUpImage)
        .where(PopUpImage.restaurant_id == scope.restaurant_id, PopUpImage.is_active.is_(True))
        .values(is_active=False)
    )


@router.post("", response_model=PopUpResponse, status_code=status.HTTP_201_CREATED)
async def create_popup(
    name: str = Form(..., min_length=1, max_length=120),
    img: UploadFile = File(...),
    scope: TenantScope = Depends(get_scope),
    media: BaseMediaService = Depends(get_media_service),
) -> PopUpResponse:
    """Create an inactive pop-up; activate it with the toggle route."""
    url = await upload_image(img, media, media_folder(scope.restaurant, "popups"))
    popup = PopUpImage(restaurant_id=scope.restaurant_id, name=name, img=url, is_active=False)
    scope.db.add(popup)
    await scope.db.commit()
    return PopUpResponse.model_validate(popup)


@router.get("", response_model=List[PopUpResponse])
async def list_popups(scope: TenantScope = Depends(get_scope)) -> List[PopUpResponse]:
    popups = await scope.list(PopUpImage, order_by=PopUpImage.created_at.desc())
    return [PopUpResponse.model_validate(p) for p in popups]


@router.get("/active", response_model=Optional[PopUpResponse])
async def get_active_popup(scope: TenantScope = Depends(get_scope)) -> Optional[PopUpResponse]:
    popups = await scope.list(PopUpImage, PopUpImage.is_active.is_(True))
    return PopUpResponse.model_validate(popups[0]) if popups else None


@router.get("/restaurant/{restaurant_id}/active", response_model=Optional[PopUpResponse])
async def get_public_active_popup(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> Optional[PopUpResponse]:
    result = await db.execute(
        select(PopUpImage)
        .where(PopUpImage.restaurant_id == restaurant_id, PopUpImage.is_active.is_(True))
        .limit(1)
    )
    popup = result.scalar_one_or_none()
    return PopUpResponse.model_validate(popup) if popup else None


@router.put("/{popup_id}/toggle", response_model=PopUpResponse)
async def toggle_popup(popup_id: int, scope: TenantScope = Depends(get_scope)) -> PopUpResponse:
    """Activate a pop-up (deactivating every other one) or deactivate it."""
    popup = await scope.get_or_404(PopUpImage, popup_id, "Pop-up")
    activate = not popup.is_active
    if activate:
        await _deactivate_all(scope)
    popup.is_active = activate
    try:
        await scope.db.commit()
    except IntegrityError:
        await scope.db.rollback()
        raise HTTPException(status_code=409, detail="Another pop-up was activated at the same time; retry")
    await scope.db.refresh(popup)

    logger.info(f"Pop-up #{popup.id} {'activated' if activate else 'deactivated'} for restaurant #{scope.restaurant_id}")
    return PopUpResponse.model_validate(popup)


@router.delete("/{popup_id}", response_model=MessageResponse)
async def delete_popup(popup_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    popup = await scope.get_or_404(PopUpImage, popup_id, "Pop-up")
    await scope.db.delete(popup)
    await scope.db.commit()
    return MessageResponse(message="Pop-up deleted successfully")
