"""
Client Records Backend — Photo File Storage
=============================================

What:  Validates, writes, resolves and removes profile photo files.
How:   Files are written with aiofiles into a single flat directory
       (settings.uploads_dir) under the name "<epoch-ms>-<original basename>".
       The database only stores that bare name.
Who:   Called by PhotoService and the photo-serving route.

Upload checks, in order:
    1. Extension allow-list (fast, no content read)
    2. Size limit
    3. Name sanitation: only the basename of the client-supplied name is kept,
       so "../../etc/passwd.png" is stored as "<ts>-passwd.png"
"""

import logging
import os
import re
import time
from pathlib import Path
from typing import Optional

import aiofiles

from clientrecords.config import settings
from clientrecords.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed File Types ────────────────────────────────────────────────────
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# Anything outside this set is replaced in stored filenames
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class FileService:
    """
    Manages the uploads directory.

    Directory layout (flat):
        uploads/
        ├── 1718031230512-portrait.jpg
        └── 1718031299001-me.png
    """

    def __init__(self, uploads_dir: Optional[str] = None):
        """
        Args:
            uploads_dir: Override the default directory (used in tests).
                         If None, uses settings.uploads_dir.
        """
        self.uploads_dir = Path(uploads_dir or settings.uploads_dir).resolve()
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with uploads_dir=%s", self.uploads_dir)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Returns the normalized (lowercase) extension.
        Raises ValidationError if the extension is not an allowed image type.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="ClientImg",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, size: int) -> None:
        """Reject empty files and files above settings.max_file_size."""
        if size == 0:
            raise ValidationError(message="Uploaded file is empty.", field="ClientImg")

        if size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="ClientImg",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    # ── Naming ────────────────────────────────────────────────────────────

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """Strip directories and unsafe characters from a client-supplied name."""
        base = Path(filename.replace("\\", "/")).name
        cleaned = _UNSAFE_CHARS.sub("_", base).lstrip(".")
        return cleaned or "upload"

    def build_stored_name(self, filename: str) -> str:
        """Timestamp-prefixed storage name: "<epoch-ms>-<sanitized basename>"."""
        return f"{int(time.time() * 1000)}-{self.sanitize_filename(filename)}"

    def resolve(self, stored_name: str) -> Path:
        """
        Absolute path of a stored file.

        Raises NotFoundError if the name would escape the uploads directory.
        """
        candidate = (self.uploads_dir / stored_name).resolve()
        try:
            candidate.relative_to(self.uploads_dir)
        except ValueError:
            raise NotFoundError(resource="file", resource_id=stored_name)
        return candidate

    # ── Write / Delete ────────────────────────────────────────────────────

    async def store_file(self, filename: str, content: bytes) -> str:
        """
        Validate and write an uploaded photo.

        Returns:
            The stored filename (what goes into Client.profile_img).

        Raises:
            ValidationError: bad extension or size
            FileStorageError: the write failed
        """
        self.validate_extension(filename)
        self.validate_size(len(content))

        stored_name = self.build_stored_name(filename)
        path = self.uploads_dir / stored_name

        try:
            self.uploads_dir.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store photo at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.info("Photo stored: %s (%d bytes)", stored_name, len(content))
        return stored_name

    def delete_file(self, stored_name: str) -> bool:
        """
        Remove a stored photo.

        Returns:
            True if a file was removed, False if there was nothing to remove.

        Raises:
            FileStorageError: the file exists but could not be removed.
        """
        path = self.resolve(stored_name)
        if not path.is_file():
            logger.debug("Photo already gone: %s", stored_name)
            return False
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Failed to delete photo %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to delete the profile image file.",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("Photo deleted: %s", stored_name)
        return True

    def cleanup_file(self, stored_name: str) -> None:
        """
        Best-effort removal used after a failed or superseded upload.
        Failures are logged, never raised.
        """
        try:
            self.delete_file(stored_name)
        except (FileStorageError, NotFoundError) as e:
            logger.warning("Failed to clean up photo %s: %s", stored_name, e.message)


_file_service: Optional[FileService] = None


def get_file_service() -> FileService:
    """Process-wide FileService, created on first use."""
    global _file_service
    if _file_service is None:
        _file_service = FileService()
    return _file_service
