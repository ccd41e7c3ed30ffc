"""
media/host.py -- Cloudinary image hosting.

Uploaded images are streamed from memory to Cloudinary and referenced by
their secure HTTPS URL.

Batch semantics (all-or-nothing):
  upload_all() uploads sequentially. If any upload fails, the images
  already uploaded in that batch are destroyed and UpstreamError is raised,
  so no partial batch survives. Route handlers call discard() when the
  database write that follows a successful batch fails, for the same reason.
  Cleanup failures are logged and otherwise ignored. Cleanup never hides the
  original error.

The Cloudinary SDK is synchronous; route handlers call into this class via
Starlette's threadpool.

Layer rule: no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath

import cloudinary
import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from core.config import Settings
from core.errors import UpstreamError, ValidationError

logger = logging.getLogger("shopadmin.media")

ALLOWED_FORMATS = ("jpg", "jpeg", "png")


@dataclass
class ImageUpload:
    """An image received from a client, held in memory until uploaded."""

    filename: str
    content: bytes


@dataclass
class HostedImage:
    url: str
    public_id: str


def check_image(image: ImageUpload, max_bytes: int) -> None:
    """Raise ValidationError if image is empty, too large, or not jpg/jpeg/png."""
    ext = PurePath(image.filename or "").suffix.lower().lstrip(".")
    if ext not in ALLOWED_FORMATS:
        raise ValidationError(f"Image must be one of: {', '.join(ALLOWED_FORMATS)}")
    if not image.content:
        raise ValidationError("Image file is empty")
    if len(image.content) > max_bytes:
        raise ValidationError(f"Image must be {max_bytes // (1024 * 1024)} MB or smaller")


class ImageHost:
    """Thin wrapper around the Cloudinary uploader.

    Usage:
        host = ImageHost.from_settings(settings)
        hosted = host.upload_all([ImageUpload("a.png", data)], folder="product")
        host.discard(hosted)   # roll back if the DB write fails
    """

    def __init__(self, cloud_name: str, api_key: str, api_secret: str) -> None:
        self.configured = bool(cloud_name and api_key and api_secret)
        if self.configured:
            cloudinary.config(
                cloud_name=cloud_name,
                api_key=api_key,
                api_secret=api_secret,
                secure=True,
            )
        else:
            logger.warning("Cloudinary credentials not set -- image uploads are disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageHost":
        return cls(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
        )

    def upload(self, image: ImageUpload, folder: str) -> HostedImage:
        """Upload one image into folder and return its URL and public id."""
        if not self.configured:
            raise UpstreamError("Image host is not configured")
        try:
            result = cloudinary.uploader.upload(
                io.BytesIO(image.content),
                folder=folder,
                resource_type="image",
                allowed_formats=list(ALLOWED_FORMATS),
            )
        except CloudinaryError as exc:
            logger.error("Upload of %r to folder %r failed: %s", image.filename, folder, exc)
            raise UpstreamError("Failed to upload image") from exc
        url = result.get("secure_url") or result.get("url")
        if not url:
            raise UpstreamError("Image host returned no URL")
        return HostedImage(url=url, public_id=result.get("public_id", ""))

    def upload_all(self, images: list[ImageUpload], folder: str) -> list[HostedImage]:
        """Upload every image or none of them.

        On the first failure the images already uploaded are destroyed and the
        UpstreamError propagates.
        """
        hosted: list[HostedImage] = []
        try:
            for image in images:
                hosted.append(self.upload(image, folder))
        except UpstreamError:
            self.discard(hosted)
            raise
        return hosted

    def discard(self, hosted: list[HostedImage]) -> None:
        """Best-effort delete of already-uploaded images."""
        for image in hosted:
            if not image.public_id:
                continue
            try:
                cloudinary.uploader.destroy(image.public_id, resource_type="image")
            except CloudinaryError as exc:
                logger.warning("Could not remove orphaned image %s: %s", image.public_id, exc)
            else:
                logger.info("Removed orphaned image %s", image.public_id)
