"""
Protocols (Interfaces) for Dependency Inversion.

The core only talks to the storage backend through IStorageBackend.
"""
from typing import AsyncIterator, Callable, List, Optional, Protocol, runtime_checkable

from .models import FileEntry, Folder, SourceFile, ZipLink

ProgressCallback = Callable[[int, int], None]


@runtime_checkable
class IStorageBackend(Protocol):
    """Remote object-storage service operations."""

    async def list_folders(self) -> List[Folder]:
        ...

    async def list_files(self, folder_id: Optional[str] = None) -> List[FileEntry]:
        ...

    async def create_folder(self, name: str) -> None:
        ...

    async def upload_file(
        self,
        source: SourceFile,
        folder_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Optional[FileEntry]:
        """Upload one file; progress_callback receives (bytes_sent, bytes_total)."""
        ...

    async def delete_file(self, file_id: str) -> None:
        ...

    async def rename_file(self, file_id: str, name: str) -> None:
        ...

    def download_zip(self, file_ids: List[str]) -> AsyncIterator[bytes]:
        """Stream a zip archive of the given files."""
        ...

    async def request_fast_zips(self) -> List[ZipLink]:
        ...

