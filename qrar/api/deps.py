"""
Shared Router Dependencies

- Bearer token authentication (get_current_restaurant)
- TenantScope: every query a merchant makes is filtered by its restaurant
- Image upload validation and forwarding to the media service
- Multipart form validation against pydantic models

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional, Type, TypeVar

from fastapi import Depends, HTTPException, UploadFile, status
from fastapi.encoders import jsonable_encoder
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrar.core.config import get_settings
from qrar.core.security import InvalidTokenError, decode_access_token
from qrar.database import get_db
from qrar.models import Restaurant
from qrar.services.media import (
    BaseMediaService,
    InvalidMediaError,
    get_media_service,
    validate_image,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ModelT = TypeVar("ModelT")
SchemaT = TypeVar("SchemaT", bound=BaseModel)


# =============================================================================
# AUTHENTICATION
# =============================================================================

async def authenticate_token(db: AsyncSession, token: str) -> Restaurant:
    """
    Resolve a bearer token to its restaurant.

    Raises:
        InvalidTokenError: Bad token, or the restaurant no longer exists
    """
    claims = decode_access_token(token)
    restaurant = await db.get(Restaurant, claims.restaurant_id)
    if restaurant is None:
        raise InvalidTokenError("Restaurant no longer exists")
    return restaurant


async def get_current_restaurant(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """FastAPI dependency: the restaurant owning the request's bearer token."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        return await authenticate_token(db, credentials.credentials)
    except InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_restaurant_or_404(db: AsyncSession, restaurant_id: int) -> Restaurant:
    """Look up a restaurant for the public, customer-facing routes."""
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail=f"Restaurant #{restaurant_id} not found")
    return restaurant


# =============================================================================
# OWNERSHIP SCOPING
# =============================================================================

class TenantScope:
    """
    Query helper bound to the authenticated restaurant.

    Every statement it builds carries ``model.restaurant_id == restaurant.id``,
    so a row belonging to another restaurant is indistinguishable from a
    missing one (404).
    """

    def __init__(self, restaurant: Restaurant, db: AsyncSession):
        self.restaurant = restaurant
        self.db = db

    @property
    def restaurant_id(self) -> int:
        return self.restaurant.id

    def select(self, model: Type[ModelT]):
        return select(model).where(model.restaurant_id == self.restaurant.id)

    async def get(self, model: Type[ModelT], object_id: int) -> Optional[ModelT]:
        result = await self.db.execute(self.select(model).where(model.id == object_id))
        return result.scalar_one_or_none()

    async def get_or_404(self, model: Type[ModelT], object_id: int, label: Optional[str] = None) -> ModelT:
        obj = await self.get(model, object_id)
        if obj is None:
            raise HTTPException(
                status_code=404,
                detail=f"{label or model.__name__} #{object_id} not found",
            )
        return obj

    async def list(self, model: Type[ModelT], *criteria: Any, order_by: Any = None) -> list[ModelT]:
        stmt = self.select(model).where(*criteria)
        stmt = stmt.order_by(order_by if order_by is not None else model.id)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def exists(self, model: Type[ModelT], object_id: int) -> bool:
        return await self.get(model, object_id) is not None


async def get_scope(
    restaurant: Restaurant = Depends(get_current_restaurant),
    db: AsyncSession = Depends(get_db),
) -> TenantScope:
    return TenantScope(restaurant, db)


# =============================================================================
# FORMS & UPLOADS
# =============================================================================

def parse_form(schema: Type[SchemaT], **fields: Any) -> SchemaT:
    """Validate multipart text fields with a pydantic model (400 on failure)."""
    try:
        return schema(**{k: v for k, v in fields.items() if v is not None})
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail=jsonable_encoder(e.errors(include_url=False, include_context=False)),
        )


async def upload_image(
    upload: UploadFile,
    media: BaseMediaService,
    folder: Optional[str] = None,
) -> str:
    """
    Validate an uploaded image and forward it to the media host.

    Returns:
        str: Hosted image URL

    Raises:
        HTTPException: 400 for a bad file, 500 when the host rejects it
    """
    data = await upload.read()
    content_type = upload.content_type or ""
    try:
        validate_image(content_type, len(data))
    except InvalidMediaError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = await media.upload_image(
        data,
        filename=upload.filename or "upload",
        content_type=content_type,
        folder=folder,
    )
    if not result.success:
        logger.error(f"Image upload failed via {media.provider_name}: {result.error_message}")
        raise HTTPException(status_code=500, detail="Image upload failed")
    return result.url


def media_folder(restaurant: Restaurant, kind: str) -> str:
    """Media host folder for one restaurant's images of a kind."""
    return f"{get_settings().cloudinary_folder}/restaurants/{restaurant.id}/{kind}"


__all__ = [
    "authenticate_token",
    "get_current_restaurant",
    "get_restaurant_or_404",
    "TenantScope",
    "get_scope",
    "parse_form",
    "upload_image",
    "media_folder",
    "get_media_service",
]
