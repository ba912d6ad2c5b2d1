"""
Ecol Backend: File Service Unit Tests
=====================================

Upload validation (extension, size, content type), storage, cleanup,
path resolution and public URL building. libmagic is not required: content
detection is patched where a test needs it.
"""

from unittest.mock import patch

import pytest

from ecol.exceptions import FileStorageError, ValidationError
from ecol.services.file_service import FileService, image_url_for


class TestFileValidation:

    @pytest.fixture(autouse=True)
    def _service(self, tmp_path):
        self.service = FileService(storage_root=str(tmp_path / "uploads"))

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("filename", ["photo.jpg", "photo.jpeg", "photo.png", "photo.JPG", "photo.Png"])
    def test_allowed_extensions(self, filename):
        assert self.service.validate_extension(filename) in {".jpg", ".jpeg", ".png"}

    @pytest.mark.parametrize("filename", ["animation.gif", "document.pdf", "malware.exe", "noextension"])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_size_over_limit(self):
        with patch("ecol.services.file_service.settings") as mock_settings:
            mock_settings.max_file_size = 1024
            with pytest.raises(ValidationError, match="exceeds maximum"):
                self.service.validate_size(None, 1025)

    def test_reported_size_over_limit(self):
        """A lying Content-Length is caught before the real size check."""
        with patch("ecol.services.file_service.settings") as mock_settings:
            mock_settings.max_file_size = 1024
            with pytest.raises(ValidationError, match="Please upload a smaller image"):
                self.service.validate_size(4096, 10)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(0, 0)

    # ── Content Type ──────────────────────────────────────────────────────

    def test_mime_type_png_accepted(self, sample_image_bytes):
        with patch.object(self.service, "detect_mime_type", return_value="image/png"):
            assert self.service.validate_mime_type(sample_image_bytes) == "image/png"

    def test_renamed_file_rejected(self):
        with patch.object(self.service, "detect_mime_type", return_value="application/pdf"):
            with pytest.raises(ValidationError, match="application/pdf"):
                self.service.validate_mime_type(b"%PDF-1.4")

    def test_detection_failure_is_storage_error(self):
        with patch.dict("sys.modules", {"magic": None}):
            with pytest.raises(FileStorageError):
                self.service.detect_mime_type(b"anything")

    # ── Storage ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_file(self, sample_image_bytes):
        with patch.object(self.service, "detect_mime_type", return_value="image/png"):
            relative_path = await self.service.validate_and_store(
                filename="front.png",
                content=sample_image_bytes,
                content_length=len(sample_image_bytes),
            )

        assert relative_path.startswith("points/")
        assert relative_path.endswith(".png")
        assert (self.service.storage_root / relative_path).read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_validate_and_store_rejects_before_writing(self):
        with pytest.raises(ValidationError):
            await self.service.validate_and_store(filename="doc.pdf", content=b"%PDF")
        assert not (self.service.storage_root / "points").exists()

    # ── Cleanup ───────────────────────────────────────────────────────────

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self):
        target = self.service.storage_root / "points" / "old.jpg"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"test content")

        await self.service.cleanup_file("points/old.jpg")
        assert not target.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self):
        await self.service.cleanup_file("points/nonexistent.jpg")

    # ── Path Resolution ───────────────────────────────────────────────────

    def test_resolve_inside_root(self):
        assert self.service.resolve("baterias.svg") == self.service.storage_root / "baterias.svg"

    @pytest.mark.parametrize("path", ["../secret.txt", "points/../../etc/passwd"])
    def test_resolve_rejects_traversal(self, path):
        with pytest.raises(ValidationError, match="Invalid file path"):
            self.service.resolve(path)


class TestImageUrl:

    def test_relative_image_is_served_from_uploads(self):
        assert image_url_for("baterias.svg") == "http://test/uploads/baterias.svg"

    def test_absolute_url_passes_through(self):
        url = "https://images.example.com/point.jpg"
        assert image_url_for(url) == url
