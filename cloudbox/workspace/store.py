"""
Workspace store - single owner of the folder list, the current listing
and everything derived from it.

Listing, totals, selection and pagination form one consistency group.
They change only through the named transitions below; a listing reload
replaces all four at once.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple
import logging

from ..errors import ValidationError
from ..models import ClientConfig, FileEntry, Folder
from ..protocols import IStorageBackend
from ..utils.formatting import format_size, usage_fraction
from .pagination import PaginationWindow
from .selection import SelectionSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkspaceView:
    """Immutable read model handed to the presentation layer."""
    folders: Tuple[Folder, ...]
    folder_id: Optional[str]
    listing: Tuple[FileEntry, ...]
    visible: Tuple[FileEntry, ...]
    visible_count: int
    has_more: bool
    total_size_bytes: int
    quota_bytes: int
    selected_ids: Tuple[str, ...]

    @property
    def usage_fraction(self) -> float:
        return usage_fraction(self.total_size_bytes, self.quota_bytes)

    @property
    def total_size_label(self) -> str:
        return format_size(self.total_size_bytes)


class WorkspaceStore:
    """
    Holds workspace state for one session.

    Usage:
        store = WorkspaceStore(backend)
        await store.load_folders()
        await store.load_files(folder.id)
        view = store.view()
    """

    def __init__(self, backend: IStorageBackend, config: Optional[ClientConfig] = None):
        self._backend = backend
        self._config = config or ClientConfig()
        self._folders: List[Folder] = []
        self._folder_id: Optional[str] = None
        self._listing: List[FileEntry] = []
        self._total_size = 0
        self._selection = SelectionSet()
        self._pagination = PaginationWindow(self._config.page_size, self._config.page_increment)
        self._generation = 0

    # Read side
    @property
    def folders(self) -> List[Folder]:
        return list(self._folders)

    @property
    def folder_id(self) -> Optional[str]:
        return self._folder_id

    @property
    def listing(self) -> List[FileEntry]:
        return list(self._listing)

    @property
    def total_size_bytes(self) -> int:
        return self._total_size

    @property
    def visible_count(self) -> int:
        return self._pagination.visible_count

    @property
    def selection(self) -> List[str]:
        return self._selection.ids()

    def visible(self) -> List[FileEntry]:
        return self._pagination.slice(self._listing)

    def has_more(self) -> bool:
        return self._pagination.has_more(len(self._listing))

    def view(self) -> WorkspaceView:
        return WorkspaceView(
            folders=tuple(self._folders),
            folder_id=self._folder_id,
            listing=tuple(self._listing),
            visible=tuple(self.visible()),
            visible_count=self._pagination.visible_count,
            has_more=self.has_more(),
            total_size_bytes=self._total_size,
            quota_bytes=self._config.quota_bytes,
            selected_ids=tuple(self._selection),
        )

    # Transitions
    async def load_folders(self) -> List[Folder]:
        folders = await self._backend.list_folders()
        self._folders = list(folders)
        logger.debug(f"Loaded {len(self._folders)} folders")
        return self.folders

    async def load_files(self, folder_id: Optional[str] = None) -> List[FileEntry]:
        """
        Fetch a listing and apply it atomically.

        On TransportError nothing changes. If a newer load was issued while
        this one was in flight, the stale result is dropped.
        """
        self._generation += 1
        generation = self._generation
        entries = await self._backend.list_files(folder_id)

        if generation != self._generation:
            logger.debug(f"Dropping stale listing for folder {folder_id}")
            return list(entries)

        self._apply_listing(folder_id, list(entries))
        return self.listing

    def _apply_listing(self, folder_id: Optional[str], entries: List[FileEntry]) -> None:
        self._folder_id = folder_id
        self._listing = entries
        self._total_size = sum(entry.size for entry in entries)
        self._selection.clear()
        self._pagination.reset()
        logger.info(
            f"Listing {folder_id or 'home'}: {len(entries)} files, {format_size(self._total_size)}"
        )

    async def create_folder(self, name: str) -> None:
        """Create a folder; blank names are ignored."""
        if not name or not name.strip():
            logger.debug("Ignoring create_folder with blank name")
            return
        await self._backend.create_folder(name.strip())
        await self.load_folders()

    def toggle(self, file_id: str) -> bool:
        if not any(entry.id == file_id for entry in self._listing):
            raise ValidationError(f"file {file_id} is not in the current listing")
        return self._selection.toggle(file_id)

    def load_more(self) -> int:
        return self._pagination.grow()
