"""
Offer routes: percentage discounts on a product, a category or the whole menu.
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.api.deps import TenantScope, get_scope, parse_form
from qrar.database import get_db
from qrar.models import Category, Offer, OfferTarget, Product, as_utc, utc_now
from qrar.schemas import ActiveOffersResponse, MessageResponse, OfferCreate, OfferResponse, OfferUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offers", tags=["Loyalty"])


def is_running(offer: Offer, now: Optional[datetime] = None) -> bool:
    """Active flag set and ``now`` inside the activation window."""
    now = now or utc_now()
    if not offer.is_active or as_utc(offer.activation_time) > now:
        return False
    return offer.expiration_time is None or as_utc(offer.expiration_time) > now


async def _check_target(scope: TenantScope, data: OfferCreate) -> None:
    model = {OfferTarget.PRODUCT: Product, OfferTarget.CATEGORY: Category}.get(data.target_type)
    if model is not None and not await scope.exists(model, data.target_id):
        raise HTTPException(
            status_code=400,
            detail=f"{model.__name__} #{data.target_id} does not belong to this restaurant",
        )


@router.post("", response_model=OfferResponse, status_code=status.HTTP_201_CREATED)
async def create_offer(data: OfferCreate, scope: TenantScope = Depends(get_scope)) -> OfferResponse:
    await _check_target(scope, data)
    offer = Offer(restaurant_id=scope.restaurant_id, **data.model_dump())
    scope.db.add(offer)
    await scope.db.commit()
    logger.info(f"Offer #{offer.id} created for restaurant #{scope.restaurant_id}")
    return OfferResponse.model_validate(offer)


@router.get("", response_model=List[OfferResponse])
async def list_offers(scope: TenantScope = Depends(get_scope)) -> List[OfferResponse]:
    offers = await scope.list(Offer, order_by=Offer.activation_time.desc())
    return [OfferResponse.model_validate(o) for o in offers]


@router.get("/restaurant/{restaurant_id}/active", response_model=ActiveOffersResponse)
async def get_active_offers(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> ActiveOffersResponse:
    """Offers running right now, grouped for the customer menu."""
    result = await db.execute(
        select(Offer)
        .where(Offer.restaurant_id == restaurant_id, Offer.is_active.is_(True))
        .order_by(Offer.id)
    )
    now = utc_now()
    grouped = ActiveOffersResponse()
    for offer in result.scalars().all():
        if not is_running(offer, now):
            continue
        item = OfferResponse.model_validate(offer)
        if offer.target_type == OfferTarget.ALL:
            grouped.all.append(item)
        elif offer.target_type == OfferTarget.CATEGORY:
            grouped.categories.setdefault(offer.target_id, []).append(item)
        else:
            grouped.products.setdefault(offer.target_id, []).append(item)
    return grouped


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(offer_id: int, scope: TenantScope = Depends(get_scope)) -> OfferResponse:
    return OfferResponse.model_validate(await scope.get_or_404(Offer, offer_id))


@router.put("/{offer_id}", response_model=OfferResponse)
async def update_offer(
    offer_id: int,
    data: OfferUpdate,
    scope: TenantScope = Depends(get_scope),
) -> OfferResponse:
    offer = await scope.get_or_404(Offer, offer_id)
    current = OfferResponse.model_validate(offer).model_dump(
        include=set(OfferCreate.model_fields)
    )
    current.update(data.model_dump(exclude_unset=True))
    merged = parse_form(OfferCreate, **current)
    await _check_target(scope, merged)

    for field, value in merged.model_dump().items():
        setattr(offer, field, value)
    await scope.db.commit()
    await scope.db.refresh(offer)
    return OfferResponse.model_validate(offer)


@router.put("/{offer_id}/toggle", response_model=OfferResponse)
async def toggle_offer(offer_id: int, scope: TenantScope = Depends(get_scope)) -> OfferResponse:
    offer = await scope.get_or_404(Offer, offer_id)
    offer.is_active = not offer.is_active
    await scope.db.commit()
    await scope.db.refresh(offer)
    return OfferResponse.model_validate(offer)


@router.delete("/{offer_id}", response_model=MessageResponse)
async def delete_offer(offer_id: int, scope: TenantScope = Depends(get_scope)) -> MessageResponse:
    offer = await scope.get_or_404(Offer, offer_id)
    await scope.db.delete(offer)
    await scope.db.commit()
    return MessageResponse(message="Offer deleted successfully")
