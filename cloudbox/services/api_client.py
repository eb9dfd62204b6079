"""HTTP adapter for the cloud storage backend."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, AsyncIterator, BinaryIO, Dict, List, Optional

import httpx

from ..errors import TransportError
from ..models import ClientConfig, FileEntry, Folder, SourceFile, ZipLink
from ..protocols import ProgressCallback

logger = logging.getLogger(__name__)


class ProgressReader:
    """
    File wrapper reporting bytes consumed by the multipart encoder.

    httpx reads upload bodies in chunks through read(); every chunk is
    reported as (bytes_sent, bytes_total).
    """

    def __init__(self, fileobj: BinaryIO, total: int, callback: Optional[ProgressCallback] = None):
        self._file = fileobj
        self._total = total
        self._sent = 0
        self._callback = callback

    def read(self, size: int = -1) -> bytes:
        chunk = self._file.read(size)
        if chunk:
            self._sent += len(chunk)
            if self._callback:
                self._callback(min(self._sent, self._total), self._total)
        return chunk

    def seek(self, offset: int, whence: int = 0) -> int:
        position = self._file.seek(offset, whence)
        if whence == 0 and offset == 0:
            self._sent = 0
        return position

    def tell(self) -> int:
        return self._file.tell()


class HTTPStorageClient:
    """
    httpx adapter for the storage REST API.

    Implements IStorageBackend. Every failure surfaces as TransportError;
    requests are never retried.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs) -> "HTTPStorageClient":
        return cls(config.api_url, timeout=config.timeout, **kwargs)

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("HTTPStorageClient not initialized. Use 'async with' context.")
        return self._client

    @staticmethod
    def _check(response: httpx.Response, method: str, endpoint: str) -> httpx.Response:
        if response.status_code >= 400:
            try:
                error_detail = response.json()
            except Exception:
                error_detail = response.text
            raise TransportError(
                f"API error {response.status_code} on {method} {endpoint}: {error_detail}",
                method=method,
                path=endpoint,
                status_code=response.status_code,
            )
        return response

    async def _request(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        client = self._require_client()
        logger.debug(f"{method} {endpoint}")
        try:
            response = await client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"{method} {endpoint} failed: {exc or type(exc).__name__}",
                method=method,
                path=endpoint,
            ) from exc
        return self._check(response, method, endpoint)

    @staticmethod
    def _json(response: httpx.Response, method: str, endpoint: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"Invalid JSON from {method} {endpoint}",
                method=method,
                path=endpoint,
                status_code=response.status_code,
            ) from exc

    async def list_folders(self) -> List[Folder]:
        response = await self._request("GET", "/folders/")
        return [Folder.from_api(item) for item in self._json(response, "GET", "/folders/")]

    async def list_files(self, folder_id: Optional[str] = None) -> List[FileEntry]:
        params = {"folder": folder_id} if folder_id else None
        response = await self._request("GET", "/files/", params=params)
        return [FileEntry.from_api(item) for item in self._json(response, "GET", "/files/")]

    async def create_folder(self, name: str) -> None:
        await self._request("POST", "/folders/create/", json={"name": name})

    async def upload_file(
        self,
        source: SourceFile,
        folder_id: Optional[str] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Optional[FileEntry]:
        data: Dict[str, str] = {"name": source.name}
        if folder_id:
            data["folder"] = folder_id

        with Path(source.path).open("rb") as fh:
            reader = ProgressReader(fh, source.size, progress_callback)
            response = await self._request(
                "POST",
                "/upload/",
                data=data,
                files={"file": (source.path.name, reader)},
            )

        if not response.content:
            return None
        payload = self._json(response, "POST", "/upload/")
        if isinstance(payload, dict) and "id" in payload:
            return FileEntry.from_api(payload)
        return None

    async def delete_file(self, file_id: str) -> None:
        await self._request("DELETE", f"/files/{file_id}/")

    async def rename_file(self, file_id: str, name: str) -> None:
        await self._request("PUT", f"/files/{file_id}/rename/", json={"name": name})

    async def download_zip(self, file_ids: List[str]) -> AsyncIterator[bytes]:
        """Stream a zip archive assembled from the given file ids."""
        client = self._require_client()
        endpoint = "/files/zip/"
        try:
            async with client.stream("POST", endpoint, json={"files": list(file_ids)}) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._check(response, "POST", endpoint)
                async for chunk in response.aiter_bytes():
                    yield chunk
        except httpx.HTTPError as exc:
            raise TransportError(
                f"POST {endpoint} failed: {exc or type(exc).__name__}",
                method="POST",
                path=endpoint,
            ) from exc

    async def request_fast_zips(self) -> List[ZipLink]:
        response = await self._request("POST", "/files/fast-zip/")
        payload = self._json(response, "POST", "/files/fast-zip/") or {}
        return [ZipLink.from_api(item) for item in payload.get("zips", [])]

    async def fetch_url(self, url: str, dest: Path) -> Path:
        """Download an absolute URL to dest, streaming to disk."""
        client = self._require_client()
        try:
            async with client.stream("GET", url) as response:
                if response.status_code >= 400:
                    await response.aread()
                    self._check(response, "GET", url)
                with Path(dest).open("wb") as out:
                    async for chunk in response.aiter_bytes():
                        out.write(chunk)
        except httpx.HTTPError as exc:
            raise TransportError(f"GET {url} failed: {exc or type(exc).__name__}", method="GET", path=url) from exc
        logger.info(f"Downloaded {url} -> {dest}")
        return Path(dest)
