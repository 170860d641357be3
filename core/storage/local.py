"""Local file storage for uploaded resumes."""

import re
import shutil
import time
from pathlib import Path
from typing import Optional, BinaryIO
import logging

logger = logging.getLogger(__name__)

# MIME type -> stored file extension
RESUME_MIME_TYPES = {
    "application/pdf": "pdf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "text/plain": "txt",
}


def build_resume_filename(
    user_name: str,
    experience_level: str,
    extension: str,
    timestamp_ms: Optional[int] = None,
) -> str:
    """
    Build the stored name of a resume upload.

    `<clean user name>_<experience level lowercased>_<millis>.<ext>`, where
    the clean name keeps only letters, digits and underscores.
    """
    clean_name = re.sub(r"[^A-Za-z0-9]+", "_", user_name).strip("_") or "user"
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{clean_name}_{experience_level.lower()}_{timestamp_ms}.{extension}"


class LocalStorage:
    """Local file storage handler rooted at a single directory."""

    def __init__(self, base_path: str = "./uploads/resumes"):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for file storage
        """
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Path:
        """Resolve a stored name, refusing anything outside the base directory."""
        file_path = (self.base_path / filename).resolve()
        if file_path.parent != self.base_path:
            raise ValueError(f"Invalid file name: {filename}")
        return file_path

    def save(self, file_data: bytes | BinaryIO, filename: str) -> Path:
        """
        Save file to local storage.

        Args:
            file_data: File data (bytes or file-like object)
            filename: Name of the file

        Returns:
            Path to saved file
        """
        file_path = self._path(filename)

        if isinstance(file_data, bytes):
            file_path.write_bytes(file_data)
        else:
            with open(file_path, 'wb') as f:
                shutil.copyfileobj(file_data, f)

        logger.info(f"Saved file to {file_path}")
        return file_path

    def read(self, filename: str) -> bytes:
        """
        Read file from local storage.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        file_path = self._path(filename)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {filename}")

        return file_path.read_bytes()

    def delete(self, filename: str) -> bool:
        """
        Delete file from local storage.

        Returns:
            True if deleted, False if there was nothing to delete
        """
        file_path = self._path(filename)

        if not file_path.exists():
            return False

        file_path.unlink()
        logger.info(f"Deleted file: {file_path}")
        return True

    def exists(self, filename: str) -> bool:
        return self._path(filename).exists()

    def get_size(self, filename: str) -> int:
        """
        Get file size in bytes.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        file_path = self._path(filename)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {filename}")

        return file_path.stat().st_size
