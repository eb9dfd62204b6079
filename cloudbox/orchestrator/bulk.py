"""Bulk operations over a selection: delete and zip download."""
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, List, Optional
import asyncio
import logging

from cloudbox.errors import TransportError, ValidationError
from cloudbox.models import BulkResult, ZipLink
from cloudbox.protocols import IStorageBackend
from cloudbox.utils.events import CancelToken, EventEmitter
logger = logging.getLogger(__name__)

SaveCallback = Callable[[AsyncIterator[bytes]], Awaitable[Any]]
Downloader = Callable[[ZipLink], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


def _require_ids(ids: Iterable[str]) -> List[str]:
    ordered = list(dict.fromkeys(ids))
    if not ordered:
        raise ValidationError("No files selected")
    return ordered


class BulkOperationRunner:
    """
    Runs delete / zip-download across a selection.

    Deletes are issued one at a time in selection order. A failed delete
    is recorded and the loop moves on to the next id.
    """

    def __init__(
        self,
        backend: IStorageBackend,
        download_stagger: float = 0.8,
        sleep: Optional[Sleep] = None,
    ):
        self._backend = backend
        self._download_stagger = download_stagger
        self._sleep = sleep or asyncio.sleep
        self._events = EventEmitter()

    def on_item_deleted(self, callback: Callable[[str], None]):
        self._events.on("item_deleted", callback)

    def on_item_failed(self, callback: Callable[[str, str], None]):
        """Receives (file_id, error)."""
        self._events.on("item_failed", callback)

    def on_download(self, callback: Callable[[ZipLink], None]):
        self._events.on("download", callback)

    async def bulk_delete(self, ids: Iterable[str], token: Optional[CancelToken] = None) -> BulkResult:
        ordered = _require_ids(ids)
        result = BulkResult()
        logger.info(f"Deleting {len(ordered)} files")

        for file_id in ordered:
            if token is not None and token.is_cancelled:
                logger.info(f"Bulk delete cancelled after {len(result.attempted)}/{len(ordered)}")
                result.cancelled = True
                break
            result.attempted.append(file_id)
            try:
                await self._backend.delete_file(file_id)
            except TransportError as e:
                logger.warning(f"Delete failed for {file_id}: {e}")
                result.failed[file_id] = str(e)
                await self._events.emit("item_failed", file_id, str(e))
                continue
            result.succeeded.append(file_id)
            await self._events.emit("item_deleted", file_id)

        logger.info(f"Bulk delete done: {len(result.succeeded)} deleted, {len(result.failed)} failed")
        return result

    async def bulk_download_zip(self, ids: Iterable[str], save: SaveCallback) -> Any:
        """Hand the zip stream for the ids to the save-to-disk action."""
        ordered = _require_ids(ids)
        logger.info(f"Requesting zip of {len(ordered)} files")
        return await save(self._backend.download_zip(ordered))

    async def fast_zip(self, download: Downloader, token: Optional[CancelToken] = None) -> List[ZipLink]:
        """
        Ask the backend to assemble archives, then fetch each one.

        Downloads are serialized with a fixed delay between them; hosts
        tend to block several downloads fired at once.
        """
        links = await self._backend.request_fast_zips()
        logger.info(f"Backend prepared {len(links)} archive(s)")

        fetched: List[ZipLink] = []
        for index, link in enumerate(links):
            if token is not None and token.is_cancelled:
                break
            if index > 0 and self._download_stagger > 0:
                await self._sleep(self._download_stagger)
            await download(link)
            fetched.append(link)
            await self._events.emit("download", link)
        return fetched
