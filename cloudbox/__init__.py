"""
cloudbox - folder-organized client for a remote object-storage service.

Uploads run in bounded concurrent waves with live progress; the workspace
store keeps the folder listing, selection and pagination consistent.

Usage:
    from cloudbox import HTTPStorageClient, NavigationController, ClientConfig

    config = ClientConfig.from_env()
    async with HTTPStorageClient.from_config(config) as backend:
        nav = NavigationController(backend, config)
        await nav.start()

        photos = nav.view().folders[0]
        await nav.select_folder(photos)

        nav.on_upload_progress(lambda snap: print(snap.current_file_name, snap.percent_for_current_file))
        result = await nav.upload_picked([Path("a.jpg"), Path("b.jpg")])

        nav.toggle(nav.view().visible[0].id)
        await nav.bulk_delete()
"""
from .errors import CloudboxError, PartialBatchFailure, TransportError, ValidationError
from .models import (
    BatchResult,
    BulkResult,
    ClientConfig,
    FileEntry,
    FileType,
    Folder,
    ProgressSnapshot,
    SourceFile,
    TransferState,
    TransferUnit,
    ZipLink,
)
from .orchestrator import BulkOperationRunner, NavigationController, UploadBatch, UploadScheduler
from .services import HTTPStorageClient
from .workspace import SelectionSet, PaginationWindow, WorkspaceStore, WorkspaceView

__version__ = "0.1.0"
__all__ = [
    # Main
    "NavigationController",
    "UploadScheduler",
    "UploadBatch",
    "BulkOperationRunner",
    "WorkspaceStore",
    "WorkspaceView",
    "SelectionSet",
    "PaginationWindow",
    "HTTPStorageClient",
    # Models
    "BatchResult",
    "BulkResult",
    "ClientConfig",
    "FileEntry",
    "FileType",
    "Folder",
    "ProgressSnapshot",
    "SourceFile",
    "TransferState",
    "TransferUnit",
    "ZipLink",
    # Errors
    "CloudboxError",
    "PartialBatchFailure",
    "TransportError",
    "ValidationError",
]
