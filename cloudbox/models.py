"""
Models for cloudbox.

Backend records (Folder, FileEntry) are immutable dataclasses; a
TransferUnit is the one mutable record and is owned by the scheduler.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

from .utils.formatting import round_half_up


DEFAULT_API_URL = "http://127.0.0.1:8000/api"
THUMBNAIL_TRANSFORM = "f_jpg,q_auto,w_300"
GB = 1024 * 1024 * 1024


class FileType(Enum):
    """Rendering strategy of a stored file."""
    IMAGE = "image"
    VIDEO = "video"
    RAW = "raw"

    @classmethod
    def parse(cls, value: Optional[str]) -> "FileType":
        try:
            return cls(value)
        except ValueError:
            return cls.RAW


@dataclass(frozen=True)
class Folder:
    """Backend folder, mirrored read-only."""
    id: str
    name: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Folder":
        return cls(id=str(data["id"]), name=data.get("name") or "")


@dataclass(frozen=True)
class FileEntry:
    """Immutable file record as listed by the backend."""
    id: str
    name: str
    size: int
    type: FileType
    location_url: str
    storage_account: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "FileEntry":
        try:
            size = max(int(data.get("size") or 0), 0)
        except (TypeError, ValueError):
            size = 0
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            size=size,
            type=FileType.parse(data.get("type")),
            location_url=data.get("file") or data.get("url") or "",
            storage_account=data.get("storage_account") or data.get("account"),
        )

    @property
    def preview_url(self) -> str:
        """Thumbnail URL for images, the raw location otherwise."""
        if self.type is FileType.IMAGE and "/upload/" in self.location_url:
            return self.location_url.replace("/upload/", f"/upload/{THUMBNAIL_TRANSFORM}/", 1)
        return self.location_url


@dataclass(frozen=True)
class SourceFile:
    """A local file selected for upload."""
    path: Path
    name: str
    size: int

    @classmethod
    def from_path(cls, path: Path, name: Optional[str] = None) -> "SourceFile":
        path = Path(path)
        return cls(path=path, name=name or path.name, size=path.stat().st_size)


class TransferState(Enum):
    """Lifecycle of a single file upload."""
    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TransferState.SUCCEEDED, TransferState.FAILED)


@dataclass
class TransferUnit:
    """One file's upload: source, target folder, byte progress, outcome."""
    source: SourceFile
    target_folder_id: Optional[str] = None
    bytes_total: int = 0
    bytes_sent: int = 0
    state: TransferState = TransferState.PENDING
    created: Optional[FileEntry] = None
    error: Optional[str] = None

    @property
    def name(self) -> str:
        return self.source.name

    @property
    def percent(self) -> int:
        """Upload percentage clamped to [0, 100]."""
        if self.state is TransferState.SUCCEEDED:
            return 100
        if self.bytes_total <= 0:
            return 0
        return min(max(round_half_up(self.bytes_sent * 100 / self.bytes_total), 0), 100)

    @property
    def fraction(self) -> float:
        """Contribution to batch progress; terminal units count as done."""
        if self.state.is_terminal:
            return 1.0
        if self.state is TransferState.PENDING:
            return 0.0
        return self.percent / 100

    def start(self) -> None:
        if self.state is not TransferState.PENDING:
            raise RuntimeError(f"Cannot start transfer of {self.name} in state {self.state.value}")
        self.state = TransferState.IN_FLIGHT

    def report(self, bytes_sent: int, bytes_total: int) -> None:
        if self.state is not TransferState.IN_FLIGHT:
            return
        self.bytes_total = max(bytes_total, 0)
        self.bytes_sent = min(max(bytes_sent, 0), self.bytes_total)

    def succeed(self, entry: Optional[FileEntry]) -> None:
        if self.state is not TransferState.IN_FLIGHT:
            raise RuntimeError(f"Cannot complete transfer of {self.name} in state {self.state.value}")
        self.state = TransferState.SUCCEEDED
        self.bytes_sent = self.bytes_total
        self.created = entry

    def fail(self, error: str) -> None:
        if self.state.is_terminal:
            raise RuntimeError(f"Transfer of {self.name} already {self.state.value}")
        self.state = TransferState.FAILED
        self.error = error


@dataclass(frozen=True)
class ProgressSnapshot:
    """Immutable progress update published by an upload batch."""
    current_file_name: Optional[str]
    percent_for_current_file: int
    units_remaining: int
    units_completed: int
    units_failed: int
    units_total: int
    aggregate_percent: int

    @property
    def units_settled(self) -> int:
        return self.units_completed + self.units_failed


@dataclass(frozen=True)
class UnitOutcome:
    """Terminal record of one transfer, kept after the unit is discarded."""
    name: str
    state: TransferState
    size: int
    entry: Optional[FileEntry] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is TransferState.SUCCEEDED

    @classmethod
    def of(cls, unit: TransferUnit) -> "UnitOutcome":
        return cls(
            name=unit.name,
            state=unit.state,
            size=unit.source.size,
            entry=unit.created,
            error=unit.error,
        )


@dataclass
class BatchResult:
    """Result of an upload batch."""
    target_folder_id: Optional[str]
    outcomes: List[UnitOutcome]
    cancelled: bool = False

    @property
    def total_files(self) -> int:
        return len(self.outcomes)

    @property
    def uploaded_files(self) -> int:
        return sum(1 for o in self.outcomes if o.state is TransferState.SUCCEEDED)

    @property
    def failed_files(self) -> int:
        return sum(1 for o in self.outcomes if o.state is TransferState.FAILED)

    @property
    def skipped_files(self) -> int:
        """Units never started because the batch was cancelled."""
        return sum(1 for o in self.outcomes if o.state is TransferState.PENDING)

    @property
    def all_success(self) -> bool:
        return self.failed_files == 0 and self.skipped_files == 0

    @property
    def created(self) -> List[FileEntry]:
        return [o.entry for o in self.outcomes if o.entry is not None]

    def raise_for_failures(self) -> None:
        """Raise PartialBatchFailure when any unit failed."""
        from .errors import PartialBatchFailure

        failed = [o for o in self.outcomes if o.state is TransferState.FAILED]
        if failed:
            raise PartialBatchFailure(failed, self.total_files)


@dataclass
class BulkResult:
    """Result of a sequential bulk delete."""
    attempted: List[str] = field(default_factory=list)
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def all_success(self) -> bool:
        return not self.failed and not self.cancelled


@dataclass(frozen=True)
class ZipLink:
    """Server-assembled archive for one storage account."""
    account: str
    download_url: str

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ZipLink":
        return cls(
            account=str(data.get("account") or ""),
            download_url=data.get("downloadUrl") or data.get("download_url") or "",
        )


@dataclass(frozen=True)
class ClientConfig:
    """Immutable client configuration."""
    api_url: str = DEFAULT_API_URL
    max_parallel: int = 3
    page_size: int = 20
    page_increment: int = 20
    download_stagger: float = 0.8  # seconds between browser-style downloads
    timeout: float = 60.0
    quota_bytes: int = 25 * GB  # free-tier limit shown by the storage meter

    def __post_init__(self):
        if self.max_parallel < 1:
            raise ValueError("max_parallel must be >= 1")
        if self.page_size < 0 or self.page_increment < 0:
            raise ValueError("page sizes must be >= 0")
        if self.download_stagger < 0:
            raise ValueError("download_stagger must be >= 0")

    @property
    def sequential(self) -> bool:
        return self.max_parallel == 1

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """Build config from CLOUDBOX_* environment variables."""
        values: Dict[str, Any] = {}
        env_map: Tuple[Tuple[str, str, type], ...] = (
            ("CLOUDBOX_API_URL", "api_url", str),
            ("CLOUDBOX_MAX_PARALLEL", "max_parallel", int),
            ("CLOUDBOX_TIMEOUT", "timeout", float),
            ("CLOUDBOX_DOWNLOAD_STAGGER", "download_stagger", float),
        )
        for env_name, key, cast in env_map:
            raw = os.getenv(env_name)
            if raw:
                try:
                    values[key] = cast(raw)
                except ValueError as exc:
                    raise ValueError(f"invalid {env_name}={raw!r}") from exc
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
