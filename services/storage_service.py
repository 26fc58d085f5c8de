"""
Storage Service - temporary upload storage.

Uploaded files are written under a temp directory with a random name and
released on a timer by a background task, independent of whether the import
that used them has finished.
"""

import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

DEFAULT_TEMP_UPLOAD_DIR = 'temp_uploads/'
DEFAULT_ALLOWED_EXTENSIONS = ('.xlsx', '.csv')
DEFAULT_MAX_FILE_SIZE_MB = 10


class StorageService:
    """
    Framework-agnostic storage for uploaded import files.
    """

    def __init__(self, temp_dir: str = DEFAULT_TEMP_UPLOAD_DIR):
        """
        Initialize storage service.

        Args:
            temp_dir: Directory for uploaded files (default: 'temp_uploads/')
        """
        self.temp_dir = temp_dir
        self._ensure_directory_exists()

    def _ensure_directory_exists(self):
        Path(self.temp_dir).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Upload directory ensured: {self.temp_dir}")

    def save_upload(self, content: bytes, original_name: str) -> str:
        """
        Write an uploaded payload to the temp directory.

        Args:
            content: File bytes
            original_name: Client file name, used only for its extension

        Returns:
            Path to the stored file
        """
        self._ensure_directory_exists()
        ext = Path(original_name).suffix.lower()
        dest_path = Path(self.temp_dir) / f"{uuid.uuid4().hex}{ext}"
        dest_path.write_bytes(content)
        logger.info(f"Stored upload '{original_name}' at {dest_path} ({len(content)} bytes)")
        return str(dest_path)

    def delete_file(self, file_path: str) -> bool:
        """
        Delete a stored upload.

        Returns:
            True if file was deleted, False if file didn't exist
        """
        path = Path(file_path)

        if path.exists():
            path.unlink()
            logger.info(f"Deleted file: {file_path}")
            return True
        else:
            logger.warning(f"File not found for deletion: {file_path}")
            return False

    def cleanup_temp_files(self, older_than_seconds: int) -> int:
        """
        Remove uploads older than the retention window.

        Args:
            older_than_seconds: Remove files last modified before now minus this

        Returns:
            Number of files deleted
        """
        temp_path = Path(self.temp_dir)

        if not temp_path.exists():
            return 0

        cutoff_time = datetime.now().timestamp() - older_than_seconds
        deleted_count = 0

        for file_path in temp_path.glob("*"):
            if file_path.is_file() and file_path.stat().st_mtime < cutoff_time:
                try:
                    file_path.unlink()
                    deleted_count += 1
                    logger.debug(f"Cleaned up temp file: {file_path}")
                except OSError as e:
                    logger.error(f"Error deleting temp file {file_path}: {e}")

        if deleted_count > 0:
            logger.info(f"Cleaned up {deleted_count} temporary files")

        return deleted_count

    @staticmethod
    def file_type_for(file_name: str) -> Optional[str]:
        """'xlsx' or 'csv' for a supported name, else None."""
        ext = Path(file_name or '').suffix.lower()
        return ext.lstrip('.') if ext in DEFAULT_ALLOWED_EXTENSIONS else None

    @staticmethod
    def validate_file_extension(file_name: str,
                                allowed_extensions: Optional[Iterable[str]] = None) -> bool:
        """
        Validate file extension.

        Args:
            file_name: File name or path
            allowed_extensions: Allowed extensions (e.g., ['.xlsx', '.csv'])

        Returns:
            True if extension is allowed, False otherwise
        """
        if allowed_extensions is None:
            allowed_extensions = DEFAULT_ALLOWED_EXTENSIONS

        ext = Path(file_name or '').suffix.lower()
        is_valid = ext in [e.lower() for e in allowed_extensions]

        if not is_valid:
            logger.warning(f"Invalid file extension: {ext} (allowed: {list(allowed_extensions)})")

        return is_valid

    @staticmethod
    def validate_file_size(size_bytes: int, max_size_mb: int = DEFAULT_MAX_FILE_SIZE_MB) -> bool:
        """
        Validate that a payload size is within limit.

        Returns:
            True if size is within limit, False otherwise
        """
        size_mb = size_bytes / (1024 * 1024)
        is_valid = size_mb <= max_size_mb

        if not is_valid:
            logger.warning(f"File size {size_mb:.2f} MB exceeds limit of {max_size_mb} MB")

        return is_valid
