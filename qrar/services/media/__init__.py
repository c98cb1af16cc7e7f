"""
Media Service Factory

Returns Mock or Cloudinary media service based on ENV_MODE, and validates
uploads before they leave the server.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from qrar.core.config import get_settings
from qrar.services.media.base import BaseMediaService, MediaUploadResult
from qrar.services.media.cloudinary import CloudinaryMediaService
from qrar.services.media.mock import MockMediaService

logger = logging.getLogger(__name__)


class InvalidMediaError(ValueError):
    """Upload rejected before reaching the media host."""


def validate_image(content_type: str, size: int) -> None:
    """
    Check an upload against the allowed image types and the size limit.

    Raises:
        InvalidMediaError: Wrong type, empty file or too large
    """
    settings = get_settings()
    allowed = settings.media_allowed_types_list
    if content_type not in allowed:
        raise InvalidMediaError(
            f"Invalid file type {content_type!r}. Allowed: {', '.join(allowed)}"
        )
    if size == 0:
        raise InvalidMediaError("Uploaded file is empty")
    if size > settings.media_max_bytes:
        raise InvalidMediaError(
            f"File too large ({size} bytes). Maximum is {settings.media_max_bytes} bytes"
        )


@lru_cache()
def get_media_service() -> BaseMediaService:
    """Get the configured media service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Media Service: Using MockMediaService (development mode)")
        return MockMediaService()
    else:
        logger.info(f"Media Service: Using CloudinaryMediaService ({settings.env_mode.value} mode)")
        return CloudinaryMediaService()


def reset_media_service() -> None:
    """Clear the cached service instance."""
    get_media_service.cache_clear()


__all__ = [
    "get_media_service",
    "reset_media_service",
    "validate_image",
    "InvalidMediaError",
    "BaseMediaService",
    "MediaUploadResult",
    "MockMediaService",
    "CloudinaryMediaService",
]
