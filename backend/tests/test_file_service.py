"""
Pinboard Backend: File Service Unit Tests
==========================================

What:  Tests for FileService validation, storage and cleanup.
How:   Each test gets a FileService rooted in a temporary directory.

Test Strategy:
    ✅ Allowed content types (image/png, image/jpeg, image/jpg)
    ✅ Rejected content types and extensions (.gif, .pdf, .exe, none)
    ✅ Size limits (empty, at limit, over limit)
    ✅ Header bytes must match the declared PNG/JPEG type
    ✅ Stored files get a UUID name under uploads/images/
    ✅ Public paths never resolve outside the images directory
    ✅ Cleanup removes files, tolerates missing ones and logs failures
"""

import logging
from pathlib import Path

import pytest

from pinboard.config import settings
from pinboard.exceptions import ValidationError
from pinboard.services import file_service as file_service_module
from pinboard.services.file_service import FileService


class TestFileValidation:
    """Tests for upload validation in FileService."""

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(storage_root=temp_storage)

    # ── Content Type ──────────────────────────────────────────────────────

    def test_png_content_type(self):
        assert self.service.validate_content_type("image/png") == ".png"

    def test_jpeg_content_types(self):
        assert self.service.validate_content_type("image/jpeg") == ".jpg"
        assert self.service.validate_content_type("image/jpg") == ".jpg"

    def test_content_type_parameters_ignored(self):
        assert self.service.validate_content_type("IMAGE/PNG; charset=binary") == ".png"

    def test_gif_content_type_rejected(self):
        with pytest.raises(ValidationError, match="Invalid mime type!"):
            self.service.validate_content_type("image/gif")

    def test_missing_content_type_rejected(self):
        with pytest.raises(ValidationError, match="Invalid mime type!"):
            self.service.validate_content_type(None)

    # ── Extension ─────────────────────────────────────────────────────────

    def test_validate_extension_case_insensitive(self):
        assert self.service.validate_extension("photo.JPG") == ".jpg"
        assert self.service.validate_extension("photo.Jpeg") == ".jpeg"
        assert self.service.validate_extension("photo.PNG") == ".png"

    @pytest.mark.parametrize("filename", ["animation.gif", "document.pdf", "malware.exe", "noextension"])
    def test_validate_extension_rejected(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    # ── Size ──────────────────────────────────────────────────────────────

    def test_validate_size_at_limit(self):
        self.service.validate_size(settings.max_file_size)

    def test_validate_size_over_limit(self):
        with pytest.raises(ValidationError, match="too large"):
            self.service.validate_size(settings.max_file_size + 1)

    def test_validate_size_empty_file(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0)

    # ── Header Bytes ──────────────────────────────────────────────────────

    def test_signature_accepts_png_and_jpeg(self, sample_image_bytes):
        self.service.validate_signature(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR", ".png")
        self.service.validate_signature(sample_image_bytes, ".jpg")

    def test_signature_mismatch_rejected(self, sample_image_bytes):
        with pytest.raises(ValidationError) as exc_info:
            self.service.validate_signature(sample_image_bytes, ".png")
        assert exc_info.value.field == "image"

    @pytest.mark.asyncio
    async def test_relabelled_file_is_not_written(self):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.validate_and_store(
                filename="photo.png", content=b"<html>not an image</html>", content_type="image/png"
            )

        assert exc_info.value.message == "The uploaded file is not a valid PNG or JPEG image."
        assert list(self.service.images_dir.iterdir()) == []


class TestFileStorage:

    @pytest.fixture(autouse=True)
    def _service(self, temp_storage):
        self.service = FileService(storage_root=temp_storage)

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_uuid_named_file(self, sample_image_bytes):
        public_path = await self.service.validate_and_store(
            filename="My Holiday Photo.jpg",
            content=sample_image_bytes,
            content_type="image/jpeg",
        )

        assert public_path.startswith("uploads/images/")
        assert public_path.endswith(".jpg")
        assert "Holiday" not in public_path
        stored = self.service.resolve_public_path(public_path)
        assert stored.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_invalid_upload_is_not_written(self):
        with pytest.raises(ValidationError):
            await self.service.validate_and_store(
                filename="animation.gif", content=b"GIF89a", content_type="image/gif"
            )

        assert list(self.service.images_dir.iterdir()) == []

    def test_resolve_public_path_stays_in_images_dir(self):
        resolved = self.service.resolve_public_path("uploads/images/../../../etc/passwd")
        assert resolved.parent == self.service.images_dir
        assert resolved.name == "passwd"

    # ── Cleanup ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, sample_image_bytes):
        public_path = await self.service.store_file(sample_image_bytes, ".png")
        stored = self.service.resolve_public_path(public_path)
        assert stored.exists()

        await self.service.cleanup_file(public_path)
        assert not stored.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self):
        # Should not raise
        await self.service.cleanup_file("uploads/images/nonexistent.jpg")
        assert not Path(self.service.images_dir / "nonexistent.jpg").exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_logs_removal_failure(self, sample_image_bytes, monkeypatch, caplog):
        public_path = await self.service.store_file(sample_image_bytes, ".jpg")

        def _refuse(path):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(file_service_module.os, "remove", _refuse)

        with caplog.at_level(logging.WARNING, logger="pinboard.services.file_service"):
            await self.service.cleanup_file(public_path)

        assert "Failed to remove image" in caplog.text
        assert self.service.resolve_public_path(public_path).exists()
