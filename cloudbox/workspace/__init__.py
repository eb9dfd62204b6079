"""Workspace state: listing, selection and pagination."""
from .pagination import PaginationWindow
from .selection import SelectionSet
from .store import WorkspaceStore, WorkspaceView

__all__ = ["PaginationWindow", "SelectionSet", "WorkspaceStore", "WorkspaceView"]
