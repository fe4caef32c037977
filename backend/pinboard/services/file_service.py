"""
Pinboard Backend: Image Storage Service
========================================

What:  Validates, stores and removes uploaded images (position photos and
       user avatars).
How:   Checks content type, extension, size and header bytes, then writes
       the bytes to <storage_root>/images/<uuid>.<ext> with aiofiles.
Who:   Called by the positions and users routes around the service call.
When:  Before the service runs (store) and after it fails or after a
       position was deleted (cleanup).

Checks, in order:
    1. Content type: image/png, image/jpeg or image/jpg
    2. Extension: must agree with the allowed set
    3. Size: non-empty and at most settings.max_file_size bytes
    4. Header bytes: must be a PNG or JPEG signature matching the type
    5. UUID filename: no user input reaches the file system path

Public paths:
    A stored file is referenced as "uploads/images/<uuid>.<ext>", which is
    also the URL path it is served from (see routes/uploads.py).
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from pinboard.config import settings
from pinboard.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
# Content type → extension used for the stored file
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

# Stored extension → leading bytes every such file starts with
FILE_SIGNATURES = {
    ".png": b"\x89PNG\r\n\x1a\n",
    ".jpg": b"\xff\xd8\xff",
}

IMAGES_DIR = "images"
PUBLIC_PREFIX = "uploads/images"


class FileService:
    """
    Manages the upload lifecycle of image files.

    Lifecycle of an uploaded file:
        1. Route reads the multipart file → FileService.validate_and_store()
        2. Content type, extension, size and header checks
        3. File is written under a fresh UUID name
        4. Public path is returned and saved on the Position/User row
        5. On a failed request, or after the owning position is deleted:
           cleanup_file() removes it (best effort)
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.images_dir = self.storage_root / IMAGES_DIR
        self.images_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_content_type(self, content_type: Optional[str]) -> str:
        """
        Check the declared content type and return the extension to store with.

        Raises:
            ValidationError if the type is missing or not an allowed image type.
        """
        mime = (content_type or "").split(";")[0].strip().lower()
        if mime not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message="Invalid mime type! Only PNG and JPEG images are accepted.",
                field="image",
                context={"content_type": mime, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return ALLOWED_MIME_TYPES[mime]

    def validate_extension(self, filename: str) -> str:
        """
        Check the original filename's extension (case-insensitive).

        Returns the normalized extension (lowercase with dot).
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, size: int) -> None:
        """
        Reject empty files and files above settings.max_file_size.

        Raises:
            ValidationError with a human-readable size limit message
        """
        if size == 0:
            raise ValidationError(
                message="The uploaded image is empty.",
                field="image",
                context={"actual_size": size},
            )
        if size > settings.max_file_size:
            max_kb = settings.max_file_size / 1000
            raise ValidationError(
                message=f"The uploaded image is too large. Maximum size is {max_kb:.0f}KB.",
                field="image",
                context={"max_size": settings.max_file_size, "actual_size": size},
            )

    def validate_signature(self, content: bytes, extension: str) -> None:
        """
        Check that the leading bytes match the declared image type.

        PNG files start with 89 50 4E 47 0D 0A 1A 0A and JPEG files with
        FF D8 FF, so renamed or relabelled files are rejected.
        """
        if not content.startswith(FILE_SIGNATURES[extension]):
            raise ValidationError(
                message="The uploaded file is not a valid PNG or JPEG image.",
                field="image",
                context={"expected": extension, "header": content[:8].hex()},
            )

    def public_path(self, filename: str) -> str:
        return f"{PUBLIC_PREFIX}/{filename}"

    def resolve_public_path(self, public_path: str) -> Path:
        """
        Map "uploads/images/<name>" back to its location on disk.

        Only the final path component is used, so a stored value can never
        point outside the images directory.
        """
        return self.images_dir / Path(public_path).name

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write validated content to disk under a UUID filename.

        Returns:
            The public path ("uploads/images/<uuid>.<ext>").

        Raises:
            FileStorageError if the write fails.
        """
        filename = f"{uuid.uuid4()}{extension}"
        absolute_path = self.images_dir / filename

        try:
            self.images_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", filename, len(content))
        return self.public_path(filename)

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_type: Optional[str],
    ) -> str:
        """
        Complete validation and storage pipeline for one upload.

        Returns:
            Public path of the stored image.
        """
        extension = self.validate_content_type(content_type)
        self.validate_extension(filename)
        self.validate_size(len(content))
        self.validate_signature(content, extension)
        return await self.store_file(content, extension)

    async def cleanup_file(self, public_path: str) -> None:
        """
        Remove a stored image (best effort).

        When: After the owning position was deleted, or when a request fails
              after its image was already stored.

        Missing files are ignored and any other failure is logged; this
        method never raises, so it is safe as a background task.
        """
        try:
            path = self.resolve_public_path(public_path)
            if path.exists():
                os.remove(path)
                logger.info("Removed image: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except Exception as e:
            logger.warning("Failed to remove image %s: %s", public_path, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
file_service = FileService()


def get_file_service() -> FileService:
    """FastAPI dependency returning the shared FileService."""
    return file_service
