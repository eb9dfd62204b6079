"""Shared fakes for cloudbox tests."""
import asyncio
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from cloudbox.errors import TransportError
from cloudbox.models import FileEntry, FileType, Folder, SourceFile, ZipLink

MB = 1024 * 1024


def make_entries(count: int, size: int = 100, prefix: str = "f") -> List[FileEntry]:
    return [
        FileEntry(
            id=f"{prefix}{i}",
            name=f"{prefix}{i}.jpg",
            size=size,
            type=FileType.IMAGE,
            location_url=f"https://cdn.example.com/upload/{prefix}{i}.jpg",
        )
        for i in range(1, count + 1)
    ]


def make_sources(sizes: List[int], prefix: str = "file") -> List[SourceFile]:
    return [
        SourceFile(path=Path(f"/tmp/{prefix}{i}.bin"), name=f"{prefix}{i}.bin", size=size)
        for i, size in enumerate(sizes, 1)
    ]


class FakeBackend:
    """In-memory storage backend recording every call."""

    def __init__(self):
        self.folders: List[Folder] = []
        self.files: Dict[Optional[str], List[FileEntry]] = {None: []}
        self.calls: List[tuple] = []
        self.log: List[tuple] = []
        self.fail_uploads = set()
        self.fail_deletes = set()
        self.fail_list = False
        self.delays: Dict[str, float] = {}
        self.list_delays: Dict[Optional[str], float] = {}
        self.fail_list_folders = set()
        self.in_flight = 0
        self.max_in_flight = 0
        self.zip_links: List[ZipLink] = []
        self._next_id = 1000

    async def list_folders(self) -> List[Folder]:
        self.calls.append(("list_folders",))
        return list(self.folders)

    async def list_files(self, folder_id: Optional[str] = None) -> List[FileEntry]:
        self.calls.append(("list_files", folder_id))
        await asyncio.sleep(self.list_delays.get(folder_id, 0))
        if self.fail_list or folder_id in self.fail_list_folders:
            raise TransportError("listing unavailable", method="GET", path="/files/")
        return list(self.files.get(folder_id, []))

    async def create_folder(self, name: str) -> None:
        self.calls.append(("create_folder", name))
        self.folders.append(Folder(id=str(len(self.folders) + 1), name=name))

    async def upload_file(self, source, folder_id=None, progress_callback=None):
        self.calls.append(("upload_file", source.name, folder_id))
        self.log.append(("start", source.name))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if progress_callback:
                progress_callback(source.size // 2, source.size)
            await asyncio.sleep(self.delays.get(source.name, 0))
            if source.name in self.fail_uploads:
                raise TransportError(f"rejected {source.name}", method="POST", path="/upload/", status_code=500)
            if progress_callback:
                progress_callback(source.size, source.size)
            self._next_id += 1
            entry = FileEntry(
                id=str(self._next_id),
                name=source.name,
                size=source.size,
                type=FileType.RAW,
                location_url=f"https://cdn.example.com/raw/{source.name}",
            )
            self.files.setdefault(folder_id, []).append(entry)
            return entry
        finally:
            self.in_flight -= 1
            self.log.append(("end", source.name))

    async def delete_file(self, file_id: str) -> None:
        self.calls.append(("delete_file", file_id))
        if file_id in self.fail_deletes:
            raise TransportError(f"cannot delete {file_id}", method="DELETE", path=f"/files/{file_id}/")
        for folder_id, entries in self.files.items():
            self.files[folder_id] = [e for e in entries if e.id != file_id]

    async def rename_file(self, file_id: str, name: str) -> None:
        self.calls.append(("rename_file", file_id, name))
        for folder_id, entries in self.files.items():
            self.files[folder_id] = [
                FileEntry(e.id, name, e.size, e.type, e.location_url) if e.id == file_id else e
                for e in entries
            ]

    async def download_zip(self, file_ids):
        self.calls.append(("download_zip", list(file_ids)))
        for file_id in file_ids:
            yield f"<{file_id}>".encode()

    async def request_fast_zips(self) -> List[ZipLink]:
        self.calls.append(("request_fast_zips",))
        return list(self.zip_links)


@pytest.fixture
def backend():
    return FakeBackend()
