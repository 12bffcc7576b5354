"""
Saving converted results.

Files are written into a download directory the way a browser saves them:
the suggested name is reduced to its base name and a " (n)" suffix is added
when the name is already taken.
"""

import io
import zipfile
from pathlib import Path
from typing import Iterable, Tuple, Union

from convert.utils.logging_config import get_logger

logger = get_logger(__name__)

FALLBACK_NAME = "download"


def safe_filename(filename: str) -> str:
    """Strip any directory part an upstream-provided name may carry."""
    name = Path(filename.replace("\\", "/")).name.strip()
    if name in ("", ".", ".."):
        return FALLBACK_NAME
    return name


def _with_counter(name: str, counter: int) -> str:
    path = Path(name)
    return f"{path.stem} ({counter}){path.suffix}"


def unique_path(directory: Union[str, Path], filename: str) -> Path:
    directory = Path(directory)
    name = safe_filename(filename)
    candidate = directory / name
    counter = 1
    while candidate.exists():
        candidate = directory / _with_counter(name, counter)
        counter += 1
    return candidate


def save_bytes(directory: Union[str, Path], filename: str, content: bytes) -> Path:
    """Write content under directory, never overwriting an existing file."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    target = unique_path(directory, filename)
    target.write_bytes(content)
    logger.info(f"Saved {target} ({len(content)} bytes)")
    return target


def build_archive(entries: Iterable[Tuple[str, bytes]]) -> bytes:
    """Zip (filename, content) pairs; repeated names get a " (n)" suffix."""
    buffer = io.BytesIO()
    used = set()

    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_STORED) as archive:
        for filename, content in entries:
            name = safe_filename(filename)
            candidate = name
            counter = 1
            while candidate in used:
                candidate = _with_counter(name, counter)
                counter += 1
            used.add(candidate)
            archive.writestr(candidate, content)

    return buffer.getvalue()
