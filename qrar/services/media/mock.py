"""
Mock Media Service

Pretends to upload images for development and tests. Returns URLs shaped
like Cloudinary's without any network traffic.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import hashlib
import logging
import os
import random
from typing import Optional

from qrar.core.config import get_settings
from qrar.services.media.base import BaseMediaService, MediaUploadResult

logger = logging.getLogger(__name__)

_EXTENSIONS = {"image/jpeg": "jpg", "image/png": "png", "image/gif": "gif"}


class MockMediaService(BaseMediaService):
    """
    Mock image host.

    The public id is derived from the file content, so uploading the same
    bytes twice yields the same URL.
    """

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.uploads: list[MediaUploadResult] = []
        logger.info(f"MockMediaService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        folder: Optional[str] = None,
    ) -> MediaUploadResult:
        await self._simulate_latency()

        if self._should_fail():
            logger.warning(f"Mock upload failed (simulated): {filename}")
            return MediaUploadResult(
                success=False,
                error_message="Simulated upload failure",
                provider="mock",
            )

        folder = folder or get_settings().cloudinary_folder
        stem = os.path.splitext(os.path.basename(filename))[0] or "image"
        digest = hashlib.sha1(data).hexdigest()[:12]
        public_id = f"{folder}/{stem}_{digest}"
        extension = _EXTENSIONS.get(content_type, "jpg")
        url = f"https://res.cloudinary.com/mock/image/upload/{public_id}.{extension}"

        result = MediaUploadResult(success=True, url=url, public_id=public_id, provider="mock")
        self.uploads.append(result)
        logger.info(f"Mock upload: {filename} ({len(data)} bytes) -> {url}")
        return result

    async def health_check(self) -> bool:
        return True
