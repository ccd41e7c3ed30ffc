"""
api/uploads.py -- Multipart form intake shared by the catalog routes.

read_images() turns FastAPI UploadFile parts into media.host.ImageUpload
values and validates all of them before any upload starts: a bad file in a
batch rejects the whole request with 400 and nothing reaches the image host.

split_list() and parse_ids() decode the comma-separated form fields used for
tags and category ids. to_id() accepts only ASCII digits within MAX_ID, the
same bound the routes put on their {id} path parameters.

store_with_images() runs the upload batch in the threadpool and then the
store write. If the store write raises, the freshly uploaded images are
discarded, so the database and the image host agree.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from fastapi import Request, UploadFile
from starlette.concurrency import run_in_threadpool

from core.errors import ValidationError
from media.host import HostedImage, ImageHost, ImageUpload, check_image

R = TypeVar("R")

# Largest id a signed 64-bit INTEGER column can hold.
MAX_ID = 2**63 - 1


async def read_images(request: Request, files: list[UploadFile] | None, max_count: int) -> list[ImageUpload]:
    """Read and validate up to max_count image parts."""
    files = [f for f in (files or []) if f is not None and f.filename]
    if len(files) > max_count:
        raise ValidationError(f"At most {max_count} images can be uploaded at once")
    max_bytes: int = request.app.state.settings.max_upload_bytes
    images: list[ImageUpload] = []
    for file in files:
        # Read one byte past the limit so oversize files are detectable without buffering them whole.
        content = await file.read(max_bytes + 1)
        image = ImageUpload(filename=file.filename or "", content=content)
        check_image(image, max_bytes)
        images.append(image)
    return images


async def store_with_images(
    request: Request,
    images: list[ImageUpload],
    folder: str,
    write: Callable[[list[str]], R],
) -> R:
    """Upload images (all-or-nothing), then call write(urls).

    If write raises, the uploaded images are removed from the host before
    the exception propagates.
    """
    host: ImageHost = request.app.state.image_host
    hosted: list[HostedImage] = []
    if images:
        hosted = await run_in_threadpool(host.upload_all, images, folder)
    try:
        return write([h.url for h in hosted])
    except Exception:
        if hosted:
            await run_in_threadpool(host.discard, hosted)
        raise


def split_list(raw: str | None) -> list[str]:
    """Split a comma-separated form value into trimmed, non-empty items."""
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def to_id(raw: str) -> int | None:
    """Return raw as a storable row id, or None if it is not one.

    Only ASCII digits count ("²" is a digit to str.isdigit but not to int),
    and the value must fit a signed 64-bit INTEGER column.
    """
    if not (raw.isascii() and raw.isdecimal()):
        return None
    value = int(raw)
    if not 1 <= value <= MAX_ID:
        return None
    return value


def parse_ids(raw: str | None, field: str) -> list[int]:
    """Parse a comma-separated list of numeric ids. Raises ValidationError on junk."""
    ids: list[int] = []
    for item in split_list(raw):
        value = to_id(item)
        if value is None:
            raise ValidationError(f"{field} must be a comma-separated list of ids")
        ids.append(value)
    return ids


def clean(value: str | None) -> str:
    """Return a form value stripped of surrounding whitespace ("" when absent)."""
    return (value or "").strip()
