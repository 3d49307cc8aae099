"""
File Storage

Local-disk storage for uploaded documents. Services never see file bytes,
only the StoredFile metadata returned here.
"""

import asyncio
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile

from bursary.core.config import settings
from bursary.core.errors import ValidationFailedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredFile:
    """Metadata for a file that has been written to storage."""

    original_filename: str
    stored_filename: str
    file_path: str
    file_size: int
    mime_type: str


class FileUploadError(ValidationFailedError):
    """Raised when an upload is rejected before it is stored."""

    def __init__(self, message: str):
        super().__init__(message=message, error_code="FILE_UPLOAD_FAILED")


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def validate_upload(content: bytes, mime_type: str | None) -> None:
    """Check size and MIME type against configured limits."""
    if not content:
        raise FileUploadError("Uploaded file is empty.")
    if len(content) > settings.max_upload_size_bytes:
        max_mb = settings.max_upload_size_bytes / (1024 * 1024)
        raise FileUploadError(f"File exceeds the maximum size of {max_mb:.0f} MB.")
    if mime_type not in settings.allowed_upload_types_list:
        raise FileUploadError(
            f"File type '{mime_type}' is not allowed. "
            f"Allowed types: {', '.join(settings.allowed_upload_types_list)}"
        )


async def save_upload(upload: UploadFile, folder: str) -> StoredFile:
    """
    Validate and persist an uploaded file.

    Args:
        upload: The multipart upload
        folder: Sub-directory under the upload root (e.g. "profiles/<id>")

    Returns:
        StoredFile metadata

    Raises:
        FileUploadError: If the file is empty, too large, or of a disallowed type
    """
    content = await upload.read()
    validate_upload(content, upload.content_type)

    original_filename = os.path.basename(upload.filename or "upload")
    extension = Path(original_filename).suffix.lower()
    stored_filename = f"{uuid.uuid4().hex}{extension}"
    path = Path(settings.upload_dir) / folder / stored_filename

    # Blocking disk write moved off the event loop
    await asyncio.to_thread(_write_file, path, content)
    logger.info(f"Stored upload {original_filename} as {path} ({len(content)} bytes)")

    return StoredFile(
        original_filename=original_filename,
        stored_filename=stored_filename,
        file_path=str(path),
        file_size=len(content),
        mime_type=upload.content_type or "application/octet-stream",
    )
