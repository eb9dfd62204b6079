"""Services for cloudbox."""
from .api_client import HTTPStorageClient, ProgressReader

__all__ = [
    "HTTPStorageClient",
    "ProgressReader",
]
