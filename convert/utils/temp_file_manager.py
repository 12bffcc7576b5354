"""
Temporary file management for the upload client.

Previews of the original images and converted results are kept as temporary
files so they can be shown or opened by reference (a ``file://`` URI). Each
file belongs to a manager and is removed when its upload item goes away or the
manager is cleaned up.
"""

import os
import uuid
import weakref
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config import get_temp_dir
from .logging_config import get_logger

logger = get_logger(__name__)

# Subdirectories per kind of temporary file
SERVICE_DIRS = {
    "preview": "previews",
    "result": "results",
}


class TempFileError(Exception):
    """Custom exception for temporary file operations."""
    pass


class TempFileInfo:
    """Information about a temporary file."""

    def __init__(self, path: str, service: str = "default", auto_cleanup: bool = True):
        self.path = path
        self.service = service
        self.auto_cleanup = auto_cleanup

    @property
    def uri(self) -> str:
        return Path(self.path).resolve().as_uri()

    def __str__(self):
        return f"TempFileInfo(path={self.path}, service={self.service})"

    def __repr__(self):
        return self.__str__()


class TempFileManager:
    """
    Owns a set of temporary files under ``base_dir/<service dir>``.

    Files created with auto_cleanup are removed by cleanup_all(), on context
    manager exit, or when the manager is garbage collected.
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None, service: str = "default"):
        self.base_dir = Path(base_dir) if base_dir else get_temp_dir()
        self.service = service
        self.service_dir = self.base_dir / SERVICE_DIRS.get(service, service)
        self.temp_files: List[TempFileInfo] = []
        self._finalizer = weakref.finalize(self, _cleanup_paths, self.temp_files)

        self.service_dir.mkdir(parents=True, exist_ok=True)

    def generate_filename(self, original_filename: Optional[str] = None,
                          extension: Optional[str] = None, prefix: str = "temp") -> str:
        """Unique name that keeps the original stem for readability."""
        ext = extension
        if ext is None and original_filename:
            ext = Path(original_filename).suffix
        ext = ext or ""
        if ext and not ext.startswith("."):
            ext = f".{ext}"

        token = uuid.uuid4().hex[:8]
        if original_filename:
            return f"{prefix}_{Path(original_filename).stem}_{token}{ext}"
        return f"{prefix}_{token}{ext}"

    def create_temp_file(
        self,
        content: bytes,
        original_filename: Optional[str] = None,
        extension: Optional[str] = None,
        prefix: str = "temp",
        auto_cleanup: bool = True
    ) -> TempFileInfo:
        """
        Write content to a new temporary file.

        Raises:
            TempFileError: If the file cannot be written
        """
        temp_path = self.service_dir / self.generate_filename(original_filename, extension, prefix)

        try:
            with open(temp_path, 'wb') as f:
                f.write(content)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to create temp file {temp_path}: {e}")
            raise TempFileError(f"Failed to create temp file: {str(e)}") from e

        logger.debug(f"Created temp file: {temp_path}")
        temp_file = TempFileInfo(path=str(temp_path), service=self.service, auto_cleanup=auto_cleanup)
        if auto_cleanup:
            self.temp_files.append(temp_file)
        return temp_file

    def cleanup_file(self, file_path: str):
        """Remove one managed file."""
        _cleanup_paths([TempFileInfo(file_path, self.service)])
        self.temp_files[:] = [f for f in self.temp_files if f.path != file_path]

    def cleanup_all(self):
        """Remove every managed file."""
        _cleanup_paths(self.temp_files)
        self.temp_files.clear()

    def get_stats(self) -> Dict[str, object]:
        total_size = 0
        for temp_file in self.temp_files:
            if os.path.exists(temp_file.path):
                total_size += os.path.getsize(temp_file.path)

        return {
            "service": self.service,
            "file_count": len(self.temp_files),
            "total_size_bytes": total_size,
            "service_dir": str(self.service_dir),
        }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup_all()


def _cleanup_paths(temp_files: List[TempFileInfo]):
    for temp_file in temp_files:
        if not temp_file.auto_cleanup:
            continue
        try:
            if os.path.exists(temp_file.path):
                os.remove(temp_file.path)
                logger.debug(f"Cleaned up temporary file: {temp_file.path}")
        except OSError as e:
            logger.warning(f"Failed to cleanup temp file {temp_file.path}: {e}")
