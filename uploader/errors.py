"""
Exceptions raised by the upload client.
"""

from typing import Optional


class UploaderError(Exception):
    """Base class for upload client errors."""
    pass


class ConversionError(UploaderError):
    """A single file could not be converted."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DownloadError(UploaderError):
    """A download was requested for results that do not exist."""
    pass


class InvalidTransitionError(UploaderError):
    """An upload item was moved to a status it cannot reach."""
    pass
