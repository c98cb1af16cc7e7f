"""
Media Service Abstract Base Class

Defines the interface for hosting uploaded images. Only the returned URL is
stored in the database.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class MediaUploadResult:
    """Result from an image upload."""
    success: bool
    url: Optional[str] = None
    public_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseMediaService(ABC):
    """Abstract base class for image hosting."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def upload_image(
        self,
        data: bytes,
        filename: str,
        content_type: str,
        folder: Optional[str] = None,
    ) -> MediaUploadResult:
        """Upload image bytes and return the hosted URL."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass
