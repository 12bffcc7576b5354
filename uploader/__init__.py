"""
Upload client for the jfif2jpg proxy.

Tracks selected JFIF files, converts each one concurrently through the
/api/convert route and saves the results individually or as a zip archive.
"""

from .errors import ConversionError, DownloadError, InvalidTransitionError, UploaderError
from .models import AddFilesResult, ItemStatus, SourceFile, UploadItem
from .notifier import Notification, NotificationLevel, Notifier
from .orchestrator import UploadOrchestrator

__all__ = [
    "AddFilesResult",
    "ConversionError",
    "DownloadError",
    "InvalidTransitionError",
    "ItemStatus",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "SourceFile",
    "UploadItem",
    "UploadOrchestrator",
    "UploaderError",
]
