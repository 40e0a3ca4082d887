"""Validation and storage of uploaded menu photos."""

import logging
import os
import random
import re
import time
from dataclasses import dataclass
from pathlib import Path

from fastapi import HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from menu_digitizer_service.extraction.vision_client import MenuImage

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = re.compile(r"jpeg|jpg|png|webp|heic")
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_UPLOAD_FILES = 10


@dataclass(frozen=True)
class UploadPolicy:
    """Limits applied to every multipart image upload.

    Attributes:
        upload_dir: Root directory for stored uploads; images go under `images/`
        max_bytes: Per-file size ceiling
        max_files: Maximum files per request
    """

    upload_dir: Path
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    max_files: int = DEFAULT_MAX_UPLOAD_FILES

    @property
    def image_dir(self) -> Path:
        return self.upload_dir / "images"


def is_allowed_image(filename: str | None, content_type: str | None) -> bool:
    """Both the file extension and the MIME type must name an allowed image type."""
    extension = Path(filename or "").suffix.lower()
    return bool(
        ALLOWED_IMAGE_TYPES.search(extension)
        and ALLOWED_IMAGE_TYPES.search((content_type or "").lower())
    )


def generate_storage_name(filename: str | None) -> str:
    """Unique name of the form `<epoch-ms>-<random><ext>`."""
    extension = Path(filename or "").suffix.lower()
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9 - 1)}{extension}"


def _write_file(path: Path, content: bytes) -> None:
    os.makedirs(path.parent, exist_ok=True)
    path.write_bytes(content)


async def store_menu_images(files: list[UploadFile], policy: UploadPolicy) -> list[MenuImage]:
    """Validate uploaded photos, persist them and return them as MenuImages.

    Args:
        files: Files from the multipart `images` field
        policy: Size, count and location limits

    Returns:
        One MenuImage per file, in upload order

    Raises:
        HTTPException: 400 for a missing, empty, surplus or non-image file,
            413 for a file over the size limit
    """
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload at least one image",
        )
    if len(files) > policy.max_files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Too many files: at most {policy.max_files} images per request",
        )

    accepted: list[tuple[UploadFile, bytes]] = []
    for upload in files:
        if not is_allowed_image(upload.filename, upload.content_type):
            logger.warning(f"Rejected upload {upload.filename!r} ({upload.content_type})")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only image files (jpeg, jpg, png, webp, heic) are allowed",
            )

        too_large = HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File {upload.filename!r} exceeds the {policy.max_bytes} byte limit",
        )
        if upload.size is not None and upload.size > policy.max_bytes:
            raise too_large

        # One byte past the limit is enough to tell an oversized file apart
        content = await upload.read(policy.max_bytes + 1)
        if not content:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Uploaded file {upload.filename!r} is empty",
            )
        if len(content) > policy.max_bytes:
            raise too_large
        accepted.append((upload, content))

    images: list[MenuImage] = []
    for upload, content in accepted:
        storage_name = generate_storage_name(upload.filename)
        await run_in_threadpool(_write_file, policy.image_dir / storage_name, content)

        images.append(
            MenuImage(
                content=content,
                content_type=upload.content_type or "image/jpeg",
                filename=storage_name,
            )
        )

    logger.info(f"Stored {len(images)} uploaded image(s) in {policy.image_dir}")
    return images
