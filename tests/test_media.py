import cloudinary.exceptions
import cloudinary.uploader
import pytest

from qrar.core.config import get_settings
from qrar.services.media import (
    CloudinaryMediaService,
    InvalidMediaError,
    MockMediaService,
    get_media_service,
    reset_media_service,
    validate_image,
)


@pytest.mark.parametrize("content_type", ["image/png", "image/jpeg", "image/gif"])
def test_allowed_image_types(content_type):
    validate_image(content_type, 1024)


@pytest.mark.parametrize("content_type", ["image/webp", "application/pdf", "text/plain", ""])
def test_other_types_are_rejected(content_type):
    with pytest.raises(InvalidMediaError, match="Invalid file type"):
        validate_image(content_type, 1024)


def test_empty_file_is_rejected():
    with pytest.raises(InvalidMediaError, match="empty"):
        validate_image("image/png", 0)


def test_size_limit():
    limit = get_settings().media_max_bytes

    validate_image("image/png", limit)
    with pytest.raises(InvalidMediaError, match="too large"):
        validate_image("image/png", limit + 1)


async def test_mock_upload_is_deterministic():
    service = MockMediaService()

    first = await service.upload_image(b"pixels", "Paneer Tikka.png", "image/png", folder="qrar/test")
    second = await service.upload_image(b"pixels", "Paneer Tikka.png", "image/png", folder="qrar/test")

    assert first.success
    assert first.url == second.url
    assert first.url.startswith("https://res.cloudinary.com/mock/image/upload/qrar/test/Paneer Tikka_")
    assert first.url.endswith(".png")
    assert len(service.uploads) == 2


async def test_mock_upload_can_fail():
    service = MockMediaService(failure_rate=1.0)

    result = await service.upload_image(b"pixels", "a.jpg", "image/jpeg")

    assert not result.success
    assert result.error_message
    assert service.uploads == []


def test_development_uses_mock_service():
    reset_media_service()
    try:
        assert isinstance(get_media_service(), MockMediaService)
    finally:
        reset_media_service()


def test_cloudinary_requires_credentials():
    with pytest.raises(ValueError, match="CLOUDINARY_CLOUD_NAME"):
        CloudinaryMediaService()


async def test_cloudinary_transport_failure_is_a_failed_upload(monkeypatch):
    monkeypatch.setenv("CLOUDINARY_CLOUD_NAME", "demo")
    monkeypatch.setenv("CLOUDINARY_API_KEY", "key")
    monkeypatch.setenv("CLOUDINARY_API_SECRET", "secret")
    get_settings.cache_clear()
    try:
        service = CloudinaryMediaService()
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()

    def unreachable(*args, **kwargs):
        raise cloudinary.exceptions.Error("Socket error: ConnectionResetError(104)")

    monkeypatch.setattr(cloudinary.uploader, "upload", unreachable)

    result = await service.upload_image(b"\x89PNG", "dosa.png", "image/png")

    assert not result.success
    assert "Socket error" in result.error_message
