"""Upload item model and its status machine."""

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from convert.config import ACCEPTED_EXTENSIONS, ACCEPTED_MIME_TYPES

from .errors import InvalidTransitionError


class ItemStatus(str, Enum):
    PENDING = "pending"
    CONVERTING = "converting"
    DONE = "done"
    ERROR = "error"


# Linear: pending -> converting -> done | error
ALLOWED_TRANSITIONS: Dict[ItemStatus, Set[ItemStatus]] = {
    ItemStatus.PENDING: {ItemStatus.CONVERTING},
    ItemStatus.CONVERTING: {ItemStatus.DONE, ItemStatus.ERROR},
    ItemStatus.DONE: set(),
    ItemStatus.ERROR: set(),
}


class SourceFile:
    """A file selected by the user: name, bytes and what the OS says about it."""

    def __init__(
        self,
        name: str,
        content: bytes,
        last_modified: Optional[int] = None,
        content_type: Optional[str] = None
    ):
        self.name = name
        self.content = content
        self.last_modified = last_modified if last_modified is not None else 0
        self.content_type = content_type

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SourceFile":
        """Read a file from disk; last_modified is in milliseconds."""
        path = Path(path)
        content = path.read_bytes()
        stat = path.stat()

        content_type = mimetypes.guess_type(path.name)[0]
        if content_type is None and path.suffix.lower() == ".jfif":
            content_type = "image/jpeg"

        return cls(
            name=path.name,
            content=content,
            last_modified=int(stat.st_mtime * 1000),
            content_type=content_type
        )

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lstrip(".").lower()

    @property
    def size(self) -> int:
        return len(self.content)

    def __repr__(self):
        return f"SourceFile(name={self.name!r}, size={self.size}, content_type={self.content_type!r})"


def is_accepted_source(source: SourceFile) -> bool:
    """Accepted when the extension or the declared type says JFIF."""
    if source.extension in ACCEPTED_EXTENSIONS:
        return True
    return (source.content_type or "").lower() in ACCEPTED_MIME_TYPES


def make_item_id(source: SourceFile) -> str:
    return f"{source.name}-{source.last_modified}"


class UploadItem:
    """
    One selected file and the progress of its conversion.

    The result fields are only set once the item is done, error_message only
    once it failed. ``history`` records every status the item has been in.
    """

    def __init__(self, source_file: SourceFile, preview_url: Optional[str] = None):
        self.id = make_item_id(source_file)
        self.source_file = source_file
        self.preview_url = preview_url
        self.status = ItemStatus.PENDING
        self.result_url: Optional[str] = None
        self.result_blob: Optional[bytes] = None
        self.result_file_name: Optional[str] = None
        self.result_content_type: Optional[str] = None
        self.error_message: Optional[str] = None
        self.history: List[ItemStatus] = [ItemStatus.PENDING]
        # temp files backing preview_url/result_url, released on removal
        self.temp_paths: List[str] = []

    @property
    def name(self) -> str:
        return self.source_file.name

    @property
    def is_done(self) -> bool:
        return self.status is ItemStatus.DONE

    def transition(self, new_status: ItemStatus) -> None:
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"{self.name}: cannot move from {self.status.value} to {new_status.value}"
            )
        self.status = new_status
        self.history.append(new_status)

    def mark_converting(self) -> None:
        self.transition(ItemStatus.CONVERTING)

    def mark_done(
        self,
        blob: bytes,
        file_name: str,
        content_type: Optional[str] = None,
        result_url: Optional[str] = None
    ) -> None:
        self.transition(ItemStatus.DONE)
        self.result_blob = blob
        self.result_file_name = file_name
        self.result_content_type = content_type
        self.result_url = result_url

    def mark_error(self, message: str) -> None:
        self.transition(ItemStatus.ERROR)
        self.error_message = message

    def __repr__(self):
        return f"UploadItem(id={self.id!r}, status={self.status.value})"


class AddFilesResult:
    """Outcome of one add_files() call."""

    def __init__(self, added: List[UploadItem], rejected_count: int, duplicate_count: int):
        self.added = added
        self.rejected_count = rejected_count
        self.duplicate_count = duplicate_count

    def __repr__(self):
        return (
            f"AddFilesResult(added={len(self.added)}, rejected={self.rejected_count}, "
            f"duplicates={self.duplicate_count})"
        )
