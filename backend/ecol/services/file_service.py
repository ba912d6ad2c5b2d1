"""
Ecol Backend: File Storage Service
==================================

What:  Validates, stores and removes uploaded point images, and builds the
       public URLs of stored images (item icons and point photos).
Why:   Keeps every file system operation, and its security checks, in one place.
Who:   Called by PointService during creation and by the services that build
       image_url fields.

Security Model:
    1. Extension check:  cheap first rejection
    2. Size check:       bounded memory use
    3. Content check:    magic bytes via python-magic (renamed files are caught)
    4. UUID filename:    no user input reaches the file system path

Storage Layout:
    uploads/
    ├── baterias.svg              (item icons shipped with the seed data)
    └── points/
        └── 3c9d...e1.jpg         (uploaded point images)
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from ecol.config import settings
from ecol.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}

POINT_IMAGE_DIR = "points"


def image_url_for(image: str) -> str:
    """
    Public URL of a stored image reference.

    Absolute http(s) URLs (the default point placeholder) pass through;
    anything else is a path under STORAGE_ROOT served at /uploads.
    """
    if image.startswith(("http://", "https://")):
        return image
    return f"{settings.public_base_url}/uploads/{image.lstrip('/')}"


class FileService:
    """
    Manages the upload lifecycle of point images.

        1. POST /points (multipart) → PointService → validate_and_store()
        2. extension, size and content checks
        3. write to uploads/points/<uuid>.<ext>
        4. the relative path is stored in points.image
        5. on a failed insert PointService calls cleanup_file()
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Return the normalized extension or raise ValidationError."""
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

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Checks the reported Content-Length first, then the bytes actually
        received (some clients lie). Empty uploads are rejected too.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded image is empty.",
                field="image",
            )

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def detect_mime_type(self, file_content: bytes) -> str:
        """Inspect the leading bytes of the upload with libmagic."""
        try:
            import magic
            return magic.from_buffer(file_content, mime=True)
        except ImportError as e:
            # python-magic is installed but libmagic itself is missing
            logger.error("libmagic unavailable, cannot verify uploads: %s", str(e))
            raise FileStorageError(
                message="Image uploads are temporarily unavailable.",
                context={"error": str(e)},
            )
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

    def validate_mime_type(self, file_content: bytes) -> str:
        """Raise ValidationError unless the content is a PNG or JPEG image."""
        mime_type = self.detect_mime_type(file_content)

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG or JPEG)."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def _generate_storage_path(self, extension: str):
        relative_path = f"{POINT_IMAGE_DIR}/{uuid.uuid4().hex}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Write validated content to disk.

        Returns:
            Path relative to the storage root, as stored in points.image.
        Raises:
            FileStorageError if directory creation or the write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def cleanup_file(self, relative_path: str) -> None:
        """
        Best-effort removal of a stored upload after a failed create.

        Missing files are ignored; other failures are logged, not raised,
        so the original error reaches the client.
        """
        path = self.storage_root / relative_path
        try:
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", relative_path)
            else:
                logger.debug("Cleanup: file already gone: %s", relative_path)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", relative_path, str(e))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """Run all checks (cheapest first), then store. Returns the relative path."""
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content)
        return await self.store_file(content, ext)

    def resolve(self, relative_path: str) -> Path:
        """
        Map a URL path onto the storage root.

        Raises ValidationError when the path escapes the root
        (e.g. ../../etc/passwd). Existence is checked by the caller.
        """
        full_path = (self.storage_root / relative_path).resolve()
        if full_path != self.storage_root and self.storage_root not in full_path.parents:
            raise ValidationError(message="Invalid file path", field="path")
        return full_path


file_service = FileService()
