"""
EventHub Backend — File Service Unit Tests
============================================

What:  Upload validation (extension, size, sniffed content type), storage
       layout, URL ↔ path mapping and cleanup.

Test Strategy:
    ✅ allowed extensions (.jpg, .jpeg, .png, .webp), case-insensitive
    ✅ rejected extensions (.gif, .pdf, .exe, none)
    ✅ size limit boundaries, empty files
    ✅ content sniffing through a stand-in `magic` module (no libmagic needed)
    ✅ path traversal refused when resolving stored files
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from eventhub.config import settings
from eventhub.exceptions import FileStorageError, NotFoundError, ValidationError
from eventhub.services.file_service import FILES_URL_PREFIX, FileService


def fake_magic(mime_type=None, error=None):
    module = MagicMock()
    if error is not None:
        module.from_buffer.side_effect = error
    else:
        module.from_buffer.return_value = mime_type
    return module


class TestFileValidation:
    def setup_method(self):
        self.service = FileService()

    # ── Extension ─────────────────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "photo.jpeg", "photo.png", "photo.webp", "PHOTO.JPG"])
    def test_allowed_extensions(self, filename):
        assert self.service.validate_extension(filename) == Path(filename).suffix.lower()

    @pytest.mark.parametrize("filename", ["animation.gif", "document.pdf", "malware.exe", "noextension", ""])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    # ── Size ──────────────────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_size_exactly_at_limit(self):
        self.service.validate_size(settings.max_file_size, settings.max_file_size)

    def test_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate_size(None, settings.max_file_size + 1)

    def test_reported_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds"):
            self.service.validate_size(settings.max_file_size + 1, 10)

    def test_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(None, 0)

    # ── Content type ──────────────────────────────────────────────────────

    def test_sniffed_jpeg_accepted(self, sample_image_bytes):
        with patch.dict(sys.modules, {"magic": fake_magic("image/jpeg")}):
            assert self.service.validate_mime_type(sample_image_bytes, "photo.jpg") == "image/jpeg"

    def test_renamed_file_rejected(self):
        with patch.dict(sys.modules, {"magic": fake_magic("application/pdf")}):
            with pytest.raises(ValidationError, match="not supported"):
                self.service.validate_mime_type(b"%PDF-1.7", "invoice.jpg")

    def test_sniffing_failure_is_storage_error(self):
        with patch.dict(sys.modules, {"magic": fake_magic(error=RuntimeError("libmagic missing"))}):
            with pytest.raises(FileStorageError):
                self.service.validate_mime_type(b"\xff\xd8", "photo.jpg")


class TestStorage:
    @pytest.mark.asyncio
    async def test_validate_and_store_layout(self, file_service, temp_storage, sample_image_bytes):
        with patch.object(FileService, "validate_mime_type", return_value="image/jpeg"):
            url = await file_service.validate_and_store(
                "Wedding Photo.JPG",
                sample_image_bytes,
                len(sample_image_bytes),
                subdir="services/12",
            )

        assert url.startswith(f"{FILES_URL_PREFIX}services/12/")
        assert url.endswith(".jpg")
        # Client filename never reaches the disk
        assert "Wedding" not in url
        stored = Path(temp_storage) / url[len(FILES_URL_PREFIX):]
        assert stored.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_resolve_stored_file(self, file_service, sample_image_bytes):
        relative = await file_service.store_file(sample_image_bytes, ".jpg", "services/1")

        assert file_service.resolve(relative).read_bytes() == sample_image_bytes

    def test_resolve_rejects_traversal(self, file_service):
        with pytest.raises(ValidationError, match="Invalid file path"):
            file_service.resolve("../../etc/passwd")

    def test_resolve_missing_file(self, file_service):
        with pytest.raises(NotFoundError):
            file_service.resolve("services/1/missing.jpg")

    def test_external_url_has_no_local_path(self, file_service):
        assert file_service.path_for_url("https://cdn.example/a.jpg") is None

    # ── Cleanup ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_cleanup_url_removes_file(self, file_service, sample_image_bytes):
        relative = await file_service.store_file(sample_image_bytes, ".png", "services/3")
        url = file_service.public_url(relative)

        await file_service.cleanup_url(url)

        assert not file_service.path_for_url(url).exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, tmp_path, file_service):
        await file_service.cleanup_file(str(tmp_path / "nonexistent.jpg"))
