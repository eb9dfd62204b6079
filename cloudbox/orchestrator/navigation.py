"""Navigation controller - coordinates all user-facing workspace verbs."""
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union
import logging

from cloudbox.errors import TransportError, ValidationError
from cloudbox.models import (
    BatchResult,
    BulkResult,
    ClientConfig,
    FileEntry,
    Folder,
    ProgressSnapshot,
    SourceFile,
    ZipLink,
)
from cloudbox.protocols import IStorageBackend
from cloudbox.services import ingest
from cloudbox.utils.events import CancelToken, EventEmitter
from cloudbox.workspace.store import WorkspaceStore, WorkspaceView

from .bulk import BulkOperationRunner, Downloader, SaveCallback
from .scheduler import UploadBatch, UploadScheduler

logger = logging.getLogger(__name__)


class NavigationController:
    """
    Wires user intents to the scheduler, the bulk runner and the store.

    Its only own state is the current folder, which is always the folder
    passed to the store's load_files.

    Usage:
        nav = NavigationController(backend)
        await nav.start()
        await nav.select_folder(photos)
        nav.on_upload_progress(lambda snap: print(snap.aggregate_percent))
        result = await nav.upload_picked([Path("a.jpg"), Path("b.jpg")])
    """

    def __init__(
        self,
        backend: IStorageBackend,
        config: Optional[ClientConfig] = None,
        store: Optional[WorkspaceStore] = None,
        scheduler: Optional[UploadScheduler] = None,
        bulk_runner: Optional[BulkOperationRunner] = None,
    ):
        self._config = config or ClientConfig()
        self._backend = backend
        self._store = store or WorkspaceStore(backend, self._config)
        self._scheduler = scheduler or UploadScheduler(backend, self._config.max_parallel)
        self._bulk = bulk_runner or BulkOperationRunner(backend, self._config.download_stagger)
        self._events = EventEmitter()
        self._current: Optional[Folder] = None
        self._active_batches: List[UploadBatch] = []
        self._active_tokens: List[CancelToken] = []

    # Event subscription methods
    def on_upload_start(self, callback: Callable[[UploadBatch], None]):
        """Receives each batch before it starts, for extra subscriptions."""
        self._events.on("upload_start", callback)

    def on_upload_progress(self, callback: Callable[[ProgressSnapshot], None]):
        self._events.on("upload_progress", callback)

    def on_upload_finish(self, callback: Callable[[BatchResult], None]):
        self._events.on("upload_finish", callback)

    # Read side
    @property
    def store(self) -> WorkspaceStore:
        return self._store

    @property
    def current_folder(self) -> Optional[Folder]:
        return self._current

    @property
    def current_folder_id(self) -> Optional[str]:
        return self._current.id if self._current else None

    def view(self) -> WorkspaceView:
        return self._store.view()

    # Verbs
    async def start(self) -> WorkspaceView:
        """Initial load: folders and the home listing."""
        await self._store.load_folders()
        await self._store.load_files(self.current_folder_id)
        return self.view()

    async def select_folder(self, folder: Optional[Folder]) -> List[FileEntry]:
        """Switch folders, abandoning running uploads and bulk operations."""
        self._cancel_active()
        previous, self._current = self._current, folder
        try:
            entries = await self._store.load_files(folder.id if folder else None)
        except TransportError:
            if self._current is folder:
                self._current = previous
            raise
        logger.info(f"Switched to {folder.name if folder else 'home'}")
        return entries

    async def refresh(self) -> List[FileEntry]:
        return await self._store.load_files(self.current_folder_id)

    async def upload_picked(self, paths: Iterable[Union[str, Path]], name: Optional[str] = None) -> BatchResult:
        return await self.upload(ingest.from_picker(paths, name=name))

    async def upload_dropped(self, items: Iterable[Union[str, Path]]) -> BatchResult:
        return await self.upload(ingest.from_drop(items))

    async def upload(self, files: Sequence[SourceFile]) -> BatchResult:
        """
        Upload into the current folder, then reload the listing.

        The reload happens whatever the outcome so the listing shows what
        the backend actually stored.
        """
        batch = self._scheduler.submit(files, self._current)
        batch.on_progress(self._forward_progress)
        await self._events.emit("upload_start", batch)

        self._active_batches.append(batch)
        try:
            result = await batch.wait()
        finally:
            self._active_batches.remove(batch)
            await self._events.drain()

        if result.failed_files:
            logger.warning(f"{result.failed_files}/{result.total_files} uploads failed")
        await self.refresh()
        await self._events.emit("upload_finish", result)
        return result

    async def create_folder(self, name: str) -> List[Folder]:
        await self._store.create_folder(name)
        return self._store.folders

    async def rename(self, file_id: str, new_name: str) -> None:
        if not new_name or not new_name.strip():
            logger.debug("Ignoring rename with blank name")
            return
        await self._backend.rename_file(file_id, new_name.strip())
        await self.refresh()

    async def delete(self, file_id: str) -> None:
        await self._backend.delete_file(file_id)
        await self.refresh()

    def toggle(self, file_id: str) -> bool:
        return self._store.toggle(file_id)

    async def bulk_delete(self) -> BulkResult:
        ids = self._store.selection
        if not ids:
            raise ValidationError("No files selected")

        token = CancelToken()
        self._active_tokens.append(token)
        try:
            result = await self._bulk.bulk_delete(ids, token)
        finally:
            self._active_tokens.remove(token)

        await self.refresh()
        return result

    async def bulk_download(self, save: SaveCallback) -> Any:
        ids = self._store.selection
        if not ids:
            raise ValidationError("No files selected")
        return await self._bulk.bulk_download_zip(ids, save)

    async def fast_download(self, download: Downloader) -> List[ZipLink]:
        token = CancelToken()
        self._active_tokens.append(token)
        try:
            return await self._bulk.fast_zip(download, token)
        finally:
            self._active_tokens.remove(token)

    def load_more(self) -> int:
        """Reveal the next page of the already fetched listing."""
        return self._store.load_more()

    # Internal methods
    def _forward_progress(self, snapshot: ProgressSnapshot) -> None:
        self._events.emit_nowait("upload_progress", snapshot)

    def _cancel_active(self) -> None:
        for batch in self._active_batches:
            batch.cancel()
        for token in self._active_tokens:
            token.cancel()
