"""Orchestrator package - coordinates uploads, bulk operations and navigation."""
from .bulk import BulkOperationRunner
from .navigation import NavigationController
from .scheduler import BatchState, UploadBatch, UploadScheduler, partition_waves

__all__ = [
    "BulkOperationRunner",
    "NavigationController",
    "BatchState",
    "UploadBatch",
    "UploadScheduler",
    "partition_waves",
]
