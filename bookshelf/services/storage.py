"""Cover image storage on Cloudinary with circuit breaker and retry."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Optional

import cloudinary
import cloudinary.uploader
import structlog
from circuitbreaker import CircuitBreakerError, circuit
from cloudinary.exceptions import Error as CloudinaryError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bookshelf.config import get_settings
from bookshelf.exceptions import StorageError
from bookshelf.models import CoverSource

logger = structlog.get_logger()


@dataclass(frozen=True)
class StoredCover:
    url: str
    source: CoverSource


def _configure_cloudinary() -> None:
    """Apply explicit credentials when set; otherwise the SDK reads CLOUDINARY_URL."""
    settings = get_settings()
    options = {"secure": True}
    if settings.cloudinary_cloud_name:
        options.update(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        )
    cloudinary.config(**options)


def _data_uri(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


class CloudinaryCoverStorage:
    """Uploads raw image bytes and returns the secure URL Cloudinary assigns."""

    source = CoverSource.CLOUDINARY

    def __init__(self, folder: str, uploader: Optional[Callable[..., dict[str, Any]]] = None):
        self.folder = folder.strip("/")
        self._uploader = uploader or cloudinary.uploader.upload

    @circuit(failure_threshold=5, recovery_timeout=30, expected_exception=CloudinaryError)
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(CloudinaryError),
        reraise=True,
    )
    def _send(self, data_uri: str) -> dict[str, Any]:
        return self._uploader(data_uri, folder=self.folder, resource_type="image")

    def upload(self, data: bytes, content_type: str) -> StoredCover:
        try:
            result = self._send(_data_uri(data, content_type))
        except (CloudinaryError, CircuitBreakerError) as exc:
            logger.error("cover_upload_failed", folder=self.folder, error=str(exc))
            raise StorageError() from exc

        url = result.get("secure_url")
        if not url:
            logger.error("cover_upload_failed", folder=self.folder, error="response without secure_url")
            raise StorageError()

        logger.info("cover_uploaded", folder=self.folder, public_id=result.get("public_id"), size=len(data))
        return StoredCover(url=url, source=self.source)


@lru_cache()
def get_cover_storage() -> CloudinaryCoverStorage:
    _configure_cloudinary()
    return CloudinaryCoverStorage(folder=get_settings().cover_folder)
