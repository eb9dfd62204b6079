"""
File ingestion: one batch format, two adapters.

The picker adapter takes explicitly chosen files; the drop adapter takes
whatever a drag-and-drop event carries (paths, folders or a text/uri-list
payload) and normalizes it into the same list of SourceFile.
"""
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union
from urllib.parse import unquote, urlparse

from ..errors import ValidationError
from ..models import SourceFile

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileCollector:
    """Collects uploadable files from folders."""

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all regular files recursively, skipping hidden entries.

        Args:
            folder: Root folder to scan

        Returns:
            Sorted list of file paths
        """
        files = []
        for item in folder.rglob("*"):
            rel_parts = item.relative_to(folder).parts
            if any(part.startswith(".") for part in rel_parts):
                continue
            if item.is_file():
                files.append(item)
        return sorted(files)


def from_picker(paths: Iterable[PathLike], name: Optional[str] = None) -> List[SourceFile]:
    """
    Build a batch from picked files.

    A custom name only applies to a single-file pick.
    """
    batch: List[SourceFile] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.is_file():
            raise ValidationError(f"not a file: {path}")
        batch.append(SourceFile.from_path(path))

    if name and name.strip():
        if len(batch) != 1:
            raise ValidationError("a custom name requires exactly one file")
        batch = [SourceFile.from_path(batch[0].path, name=name.strip())]
    return batch


def _uri_to_path(item: str) -> Optional[Path]:
    item = item.strip()
    if not item or item.startswith("#"):
        return None
    if item.startswith("file://"):
        return Path(unquote(urlparse(item).path))
    return Path(item)


def from_drop(items: Iterable[PathLike]) -> List[SourceFile]:
    """
    Normalize dropped items into a batch.

    Folders are expanded recursively; missing paths are skipped with a
    warning rather than failing the whole drop.
    """
    batch: List[SourceFile] = []
    seen = set()
    for raw in items:
        path = _uri_to_path(str(raw)) if isinstance(raw, str) else Path(raw)
        if path is None:
            continue
        path = path.expanduser()
        if path.is_dir():
            candidates = FileCollector.collect_files(path)
        elif path.is_file():
            candidates = [path]
        else:
            logger.warning(f"Dropped item does not exist, skipping: {path}")
            continue
        for candidate in candidates:
            key = candidate.resolve()
            if key in seen:
                continue
            seen.add(key)
            batch.append(SourceFile.from_path(candidate))
    return batch


def parse_uri_list(payload: str) -> List[str]:
    """Split a text/uri-list drop payload into items."""
    return [line for line in payload.splitlines() if line.strip() and not line.startswith("#")]
