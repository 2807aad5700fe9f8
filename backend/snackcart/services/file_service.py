"""
SnackCart Backend — Upload Storage Service
===========================================

What:  Accepts a single uploaded snack photo, validates it, and writes it to disk.
How:   Validates extension, size and sniffed content type, stores the bytes in a
       date-organized directory under a UUID filename, and hands back the
       server-relative `img` path the API persists.
Who:   Called by SnackService on create and update; cleanup_file is called on
       failed creates and on delete.

No resizing, deduplication or content addressing happens here: one upload is
one file.

Directory Structure:
    uploads/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-....jpg
                └── e5f6g7h8-....png

    Stored `img` value: /uploads/2024/01/15/a1b2c3d4-....jpg
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles

from snackcart.config import settings
from snackcart.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/webp": ".webp",
    "image/gif": ".gif",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp", ".gif"}

_EXTENSION_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
}


class FileService:
    """
    Manages upload validation, storage and cleanup.

    Lifecycle of an uploaded photo:
        1. Route reads the multipart `img` field → SnackService → validate_and_store()
        2. Extension check (fast, rejects obviously wrong files)
        3. Size check (empty files and files above MAX_FILE_SIZE)
        4. Content type check via magic bytes (catches renamed files)
        5. File is written under a UUID filename in a date directory
        6. The public path (/uploads/...) is returned and stored as `img`
    """

    def __init__(self, uploads_root: Optional[str] = None, url_path: Optional[str] = None):
        """
        Args:
            uploads_root: Override the storage directory (used in tests).
            url_path: Override the public URL prefix (used in tests).
        """
        self.uploads_root = Path(uploads_root or settings.uploads_root).resolve()
        self.url_path = (url_path or settings.uploads_url_path).rstrip("/")
        self.uploads_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with uploads_root=%s", self.uploads_root)

    def validate_extension(self, filename: str) -> str:
        """
        Checks that the file extension is in the allowed list.

        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="img",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Checks the declared size first (clients may report it), then the real
        byte count (clients may lie).
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded image is empty. Please choose a photo.",
                field="img",
            )

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"Image is too large. Maximum size is {max_mb:.0f}MB.",
                field="img",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=(
                    f"Image is too large ({actual_size / (1024 * 1024):.1f}MB). "
                    f"Maximum size is {max_mb:.0f}MB."
                ),
                field="img",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Validate the real content type by inspecting the leading bytes.

        python-magic needs the libmagic system library. Where it is missing
        (slim CI images) the extension mapping is used instead and a warning
        is logged.

        Returns:
            Detected MIME type string (e.g., "image/jpeg")
        """
        try:
            import magic
            mime_type = magic.from_buffer(file_content, mime=True)
        except ImportError:
            logger.warning(
                "python-magic not available; falling back to extension-based type detection. "
                "Install libmagic for production."
            )
            mime_type = _EXTENSION_MIME_TYPES.get(
                Path(filename).suffix.lower(), "application/octet-stream"
            )
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify the image type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a PNG, JPEG, WebP or GIF image."
                ),
                field="img",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """
        Creates a YYYY/MM/DD/<uuid><ext> path.

        Returns: Tuple of (absolute_path, public_path) where public_path is
                 what gets stored in `img`.
        """
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.uploads_root / relative_path, f"{self.url_path}/{relative_path}"

    def resolve_public_path(self, public_path: str) -> Optional[Path]:
        """
        Maps a stored `img` value back to its file on disk.

        Returns None for absolute URLs, for paths outside the uploads prefix,
        and for anything that would escape the uploads directory.
        """
        prefix = f"{self.url_path}/"
        if not public_path.startswith(prefix):
            return None
        candidate = (self.uploads_root / public_path[len(prefix):]).resolve()
        if not candidate.is_relative_to(self.uploads_root):
            return None
        return candidate

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk with async I/O.

        Returns: Tuple of (absolute_path, public_path).
        Raises:  FileStorageError if directory creation or the write fails.
        """
        absolute_path, public_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("Upload stored: %s (%d bytes)", public_path, len(content))
            return str(absolute_path), public_path

        except OSError as e:
            logger.error("Failed to store upload at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save the uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a file from storage, best-effort.

        Missing files are ignored; other failures are logged and swallowed
        because a stray photo on disk never affects an API response.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))

    async def cleanup_public_path(self, public_path: str) -> None:
        """Removes the file behind a stored `img` value if it is one of our uploads."""
        path = self.resolve_public_path(public_path)
        if path is not None:
            await self.cleanup_file(str(path))

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Complete validation and storage pipeline.

        Validation order (cheapest first):
            1. Extension check
            2. Size check
            3. Content type check
            4. Store file

        Returns: Tuple of (absolute_path, public_path).
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)
        return await self.store_file(content, ext)


file_service = FileService()
