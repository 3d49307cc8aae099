"""
Unit tests for upload validation and storage.
"""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from bursary.core import storage
from bursary.core.storage import FileUploadError, save_upload, validate_upload


class TestValidateUpload:
    """Tests for validate_upload."""

    def test_accepts_pdf(self):
        validate_upload(b"%PDF-1.7", "application/pdf")

    def test_rejects_empty(self):
        with pytest.raises(FileUploadError) as exc_info:
            validate_upload(b"", "application/pdf")

        assert exc_info.value.error_code == "FILE_UPLOAD_FAILED"
        assert exc_info.value.status_code == 422

    def test_rejects_disallowed_type(self):
        with pytest.raises(FileUploadError, match="not allowed"):
            validate_upload(b"MZ", "application/x-msdownload")

    def test_rejects_oversized(self, monkeypatch):
        monkeypatch.setattr(storage.settings, "max_upload_size_bytes", 4)

        with pytest.raises(FileUploadError, match="maximum size"):
            validate_upload(b"12345", "image/png")


class TestSaveUpload:
    """Tests for save_upload."""

    @pytest.mark.asyncio
    async def test_writes_under_folder(self, tmp_path, monkeypatch):
        monkeypatch.setattr(storage.settings, "upload_dir", str(tmp_path))
        upload = UploadFile(
            file=io.BytesIO(b"%PDF-1.7 fee structure"),
            filename="../../fees.PDF",
            headers=Headers({"content-type": "application/pdf"}),
        )

        stored = await save_upload(upload, "applications/abc")

        assert stored.original_filename == "fees.PDF"
        assert stored.stored_filename.endswith(".pdf")
        assert stored.file_size == len(b"%PDF-1.7 fee structure")
        written = tmp_path / "applications" / "abc" / stored.stored_filename
        assert written.read_bytes() == b"%PDF-1.7 fee structure"
