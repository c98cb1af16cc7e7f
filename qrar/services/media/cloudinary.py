"""
Cloudinary Media Service Implementation

Production implementation using the official Cloudinary Python SDK.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET

The SDK is synchronous, so every call runs in a worker thread to keep the
event loop free.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import io
import logging
from typing import Optional

import cloudinary
import cloudinary.api
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from qrar.core.config import get_settings
from qrar.services.media.base import BaseMediaService, MediaUploadResult

logger = logging.getLogger(__name__)


class CloudinaryMediaService(BaseMediaService):
    """
    Production image host backed by Cloudinary.

    Example:
        >>> service = CloudinaryMediaService()
        >>> result = await service.upload_image(data, "burger.png", "image/png")
        >>> result.url
        'https://res.cloudinary.com/<cloud>/image/upload/...'
    """

    def __init__(self):
        """
        Configure the SDK from settings.

        Raises:
            ValueError: If Cloudinary credentials are not configured
        """
        settings = get_settings()

        if not (
            settings.cloudinary_cloud_name
            and settings.cloudinary_api_key
            and settings.cloudinary_api_secret
        ):
            raise ValueError(
                "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET "
                "are required for production mode. Set them in your .env file or "
                "environment variables."
            )

        cloudinary.config(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            secure=True,
        )
        self.default_folder = settings.cloudinary_folder
        logger.info(f"CloudinaryMediaService initialized (cloud={settings.cloudinary_cloud_name})")

    @property
    def provider_name(self) -> str:
        return "cloudinary"

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        folder: Optional[str] = None,
    ) -> MediaUploadResult:
        try:
            response = await asyncio.to_thread(
                cloudinary.uploader.upload,
                io.BytesIO(data),
                folder=folder or self.default_folder,
                resource_type="image",
                filename_override=filename,
            )
        # The SDK re-raises urllib3 and socket failures as cloudinary.exceptions.Error
        except CloudinaryError as e:
            logger.error(f"Cloudinary upload failed for {filename}: {e}")
            return MediaUploadResult(
                success=False,
                error_message=str(e),
                provider="cloudinary",
            )

        logger.info(f"Uploaded {filename} to Cloudinary: {response.get('public_id')}")
        return MediaUploadResult(
            success=True,
            url=response.get("secure_url"),
            public_id=response.get("public_id"),
            provider="cloudinary",
        )

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(cloudinary.api.ping)
            return True
        except CloudinaryError as e:
            logger.error(f"Cloudinary health check failed: {e}")
            return False
