"""
EventHub Backend — Gallery File Storage
=========================================

What:  Validates uploaded gallery images, writes them under the storage root
       and maps between stored files and the URLs kept in Service.images.
Who:   CatalogService (upload / remove image) and the GET /api/files route.

Layout:
    STORAGE_ROOT/
    └── services/
        └── 12/
            ├── 5f0c1d2e-....jpg
            └── 9a8b7c6d-....png

    Stored under a service-specific directory with a UUID filename; the
    client-supplied name only contributes its extension. The public URL is
    FILES_URL_PREFIX + relative path, e.g. /api/files/services/12/5f0c....jpg.

Upload checks, cheapest first:
    1. extension in ALLOWED_EXTENSIONS
    2. size (Content-Length if sent, then actual bytes) <= MAX_FILE_SIZE
    3. content sniffed by libmagic is an allowed image type
"""

import logging
import os
import uuid
from pathlib import Path
from typing import Optional

import aiofiles

from eventhub.config import settings
from eventhub.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

FILES_URL_PREFIX = "/api/files/"

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".webp"}


class FileService:
    """
    Disk storage for gallery images.

    `storage_root` defaults to settings.storage_root; tests point it at a
    temporary directory.
    """

    def __init__(self, storage_root: Optional[str] = None):
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """Return the lowercased extension or raise ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or filename}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="files",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        limit = settings.max_file_size
        max_mb = limit / (1024 * 1024)

        if content_length and content_length > limit:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB.",
                field="files",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )
        if actual_size > limit:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="files",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )
        if actual_size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="files")

    def validate_mime_type(self, content: bytes, filename: str) -> str:
        """
        Sniff the real content type from the file header bytes.

        python-magic needs the libmagic system library; it is imported here so
        that the module loads on machines without it, and any failure to run
        it is reported as a storage error rather than accepted blindly.
        """
        try:
            import magic

            mime_type = magic.from_buffer(content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed for %s: %s", filename, e)
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "Gallery images must be PNG, JPEG or WebP."
                ),
                field="files",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    # ── Storage ───────────────────────────────────────────────────────────

    async def store_file(self, content: bytes, extension: str, subdir: str) -> str:
        """Write bytes under `subdir` with a fresh UUID name; returns the relative path."""
        relative_path = f"{subdir.strip('/')}/{uuid.uuid4()}{extension}"
        absolute_path = self.storage_root / relative_path

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, e)
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
        subdir: str = "uploads",
    ) -> str:
        """
        Run every upload check, store the file and return its public URL.

        Raises:
            ValidationError: wrong extension, size or content type
            FileStorageError: disk write or type sniffing failed
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)
        relative_path = await self.store_file(content, ext, subdir)
        return self.public_url(relative_path)

    # ── Mapping between URLs and files ───────────────────────────────────

    @staticmethod
    def public_url(relative_path: str) -> str:
        return f"{FILES_URL_PREFIX}{relative_path}"

    def resolve(self, relative_path: str) -> Path:
        """
        Absolute path of a stored file, confined to the storage root.

        Raises:
            ValidationError: the path escapes the storage root (../ tricks)
            NotFoundError: no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="File", resource_id=relative_path)
        return full_path

    def path_for_url(self, url: str) -> Optional[Path]:
        """Local path behind a gallery URL, or None for external URLs."""
        if not url.startswith(FILES_URL_PREFIX):
            return None
        candidate = (self.storage_root / url[len(FILES_URL_PREFIX):]).resolve()
        if not candidate.is_relative_to(self.storage_root):
            return None
        return candidate

    async def cleanup_file(self, file_path: str) -> None:
        """
        Best-effort removal of a stored file.

        Missing files are ignored; other failures are logged and not raised,
        since an orphaned image never affects the gallery itself.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, e)

    async def cleanup_url(self, url: str) -> None:
        path = self.path_for_url(url)
        if path is not None:
            await self.cleanup_file(str(path))
