"""
Upload orchestrator.

Keeps the list of selected files, starts one conversion task per accepted
file, tracks each item's status and exports finished results one by one or
as a single zip archive.

Items live in an insertion-ordered dict keyed by id. Conversion tasks run
concurrently on the event loop and only ever touch their own item; before
mutating it a task checks that the very same item object is still
registered, so results arriving after remove() or clear() are dropped.
"""

import asyncio
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Union

import httpx

from convert.config import ARCHIVE_NAME, get_proxy_url
from convert.utils.http_client import HTTPClientFactory, ServiceType
from convert.utils.logging_config import get_logger
from convert.utils.temp_file_manager import TempFileError, TempFileManager

from .client import ConvertedFile, ProxyClient
from .downloads import build_archive, save_bytes
from .errors import ConversionError, DownloadError
from .models import AddFilesResult, ItemStatus, SourceFile, UploadItem, is_accepted_source
from .notifier import Notifier

logger = get_logger(__name__)


def _count_message(count: int, one: str, many: str) -> str:
    return one if count == 1 else many.format(count=count)


class UploadOrchestrator:
    """
    Manages a queue of JFIF conversions against the /api/convert route.

    Args:
        proxy_url: URL of the conversion route (defaults to JFIF2JPG_PROXY_URL)
        client: httpx client to use; one is created and owned when omitted
        notifier: receives the transient success/error notifications
        temp_dir: base directory for preview and result files

    add_files() schedules tasks with asyncio.create_task, so it must be called
    while an event loop is running.
    """

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        notifier: Optional[Notifier] = None,
        temp_dir: Optional[Union[str, Path]] = None
    ):
        self.proxy_url = proxy_url or get_proxy_url()
        self._http_factory: Optional[HTTPClientFactory] = None
        if client is None:
            self._http_factory = HTTPClientFactory()
            client = self._http_factory.create_client(ServiceType.PROXY)

        self.proxy = ProxyClient(client, self.proxy_url)
        self.notifier = notifier or Notifier()
        self._items: Dict[str, UploadItem] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._previews = TempFileManager(temp_dir, service="preview")
        self._results = TempFileManager(temp_dir, service="result")

    # ----- queue state -----

    @property
    def items(self) -> List[UploadItem]:
        """Snapshot of the queue in selection order."""
        return list(self._items.values())

    def get(self, item_id: str) -> Optional[UploadItem]:
        return self._items.get(item_id)

    def done_items(self) -> List[UploadItem]:
        return [
            item for item in self._items.values()
            if item.status is ItemStatus.DONE
            and item.result_blob is not None
            and item.result_file_name
        ]

    def _is_current(self, item: UploadItem) -> bool:
        return self._items.get(item.id) is item

    # ----- adding files -----

    def add_files(self, candidates: Iterable[SourceFile]) -> AddFilesResult:
        """
        Queue candidates and start converting them.

        Only JFIF files (by extension or declared type) are kept; files whose
        name is already queued, or repeats an earlier candidate, are dropped.
        Each rejection kind produces one error notification with its count.
        """
        candidates = list(candidates)

        accepted = [source for source in candidates if is_accepted_source(source)]
        rejected_count = len(candidates) - len(accepted)
        if rejected_count:
            self.notifier.error(_count_message(
                rejected_count,
                "1 file rejected (only JFIF allowed)",
                "{count} files rejected (only JFIF allowed)"
            ))

        present = {item.name for item in self._items.values()}
        unique = []
        for source in accepted:
            if source.name in present:
                continue
            present.add(source.name)
            unique.append(source)

        duplicate_count = len(accepted) - len(unique)
        if duplicate_count:
            self.notifier.error(_count_message(
                duplicate_count,
                "File already exists",
                "{count} files already exist"
            ))

        added = []
        for source in unique:
            item = UploadItem(source)
            self._attach_preview(item)
            self._items[item.id] = item
            added.append(item)

        for item in added:
            self._start(item)

        if added:
            logger.info(f"Queued {len(added)} file(s) for conversion")

        return AddFilesResult(added, rejected_count, duplicate_count)

    def _attach_preview(self, item: UploadItem) -> None:
        try:
            preview = self._previews.create_temp_file(
                item.source_file.content,
                original_filename=item.name,
                prefix="preview"
            )
        except TempFileError as e:
            logger.warning(f"No preview for {item.name}: {e}")
            return
        item.preview_url = preview.uri
        item.temp_paths.append(preview.path)

    def _start(self, item: UploadItem) -> asyncio.Task:
        task = asyncio.create_task(self.convert(item), name=f"convert:{item.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ----- conversion -----

    async def convert(self, item: UploadItem) -> UploadItem:
        """
        Run one conversion. Never raises: failures end in the error status.
        """
        if not self._is_current(item):
            logger.debug(f"Skipping conversion of removed item {item.id}")
            return item
        if item.status is not ItemStatus.PENDING:
            logger.warning(f"Not converting {item.name}: already {item.status.value}")
            return item

        item.mark_converting()

        try:
            converted = await self.proxy.convert(item.source_file)
            if not self._is_current(item):
                logger.info(f"Discarding result for {item.name}: item was removed")
                return item
            self._complete(item, converted)
            return item
        except ConversionError as e:
            message = str(e)
        except Exception as e:
            message = str(e) or "Conversion failed"

        logger.error(f"Conversion error for {item.name}: {message}")
        self._fail(item, message)
        return item

    def _fail(self, item: UploadItem, message: str) -> None:
        if not self._is_current(item):
            logger.info(f"Discarding failure for {item.name}: item was removed")
            return
        if item.status is not ItemStatus.CONVERTING:
            logger.warning(f"Not marking {item.name} as failed: already {item.status.value}")
            return
        item.mark_error(message)
        self.notifier.error(f"Failed to convert {item.name}")

    def _complete(self, item: UploadItem, converted: ConvertedFile) -> None:
        result_url = None
        try:
            stored = self._results.create_temp_file(
                converted.content,
                original_filename=converted.filename,
                prefix="result"
            )
            result_url = stored.uri
            item.temp_paths.append(stored.path)
        except TempFileError as e:
            logger.warning(f"Result of {item.name} is kept in memory only: {e}")

        item.mark_done(
            converted.content,
            converted.filename,
            content_type=converted.content_type,
            result_url=result_url
        )
        self.notifier.success(f"Converted {item.name} successfully")

    async def wait(self) -> None:
        """Wait until every conversion started so far has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ----- removal -----

    def _release(self, item: UploadItem) -> None:
        for path in item.temp_paths:
            self._previews.cleanup_file(path)
            self._results.cleanup_file(path)
        item.temp_paths.clear()

    def remove(self, item_id: str) -> bool:
        """Drop one item. Its in-flight request keeps running but is ignored."""
        item = self._items.pop(item_id, None)
        if item is None:
            return False
        self._release(item)
        logger.debug(f"Removed {item.name} ({item.status.value})")
        return True

    def clear(self) -> int:
        """Drop every item regardless of status; returns how many were dropped."""
        removed = list(self._items.values())
        self._items.clear()
        for item in removed:
            self._release(item)
        return len(removed)

    # ----- downloads -----

    def download_one(self, item: UploadItem, directory: Union[str, Path]) -> Path:
        """Save one converted result under its suggested name."""
        if item.status is not ItemStatus.DONE or item.result_blob is None or not item.result_file_name:
            raise DownloadError(f"{item.name} has no converted result to download")
        return save_bytes(directory, item.result_file_name, item.result_blob)

    async def download_all(self, directory: Union[str, Path]) -> Optional[Path]:
        """
        Save every converted result.

        One result is saved as is; two or more are packed into
        converted_images.zip, written once the archive is complete. With no
        results an error notification is emitted and None is returned.
        """
        done = self.done_items()

        if not done:
            self.notifier.error("No converted files to download")
            return None

        if len(done) == 1:
            return self.download_one(done[0], directory)

        entries = [(item.result_file_name, item.result_blob) for item in done]
        try:
            archive = await asyncio.to_thread(build_archive, entries)
        except Exception as e:
            self.notifier.error("Failed to create archive")
            raise DownloadError(f"Failed to create archive: {e}") from e

        logger.info(f"Packed {len(entries)} files into {ARCHIVE_NAME}")
        return save_bytes(directory, ARCHIVE_NAME, archive)

    # ----- lifecycle -----

    async def aclose(self) -> None:
        await self.wait()
        self._previews.cleanup_all()
        self._results.cleanup_all()
        if self._http_factory is not None:
            await self._http_factory.close_all_clients()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
