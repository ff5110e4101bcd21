"""
Version 1 of the workspace API.

The model and the operation contract are imported here; the mock engine
lives in ``workspace_api.v1.mock_client`` and is imported explicitly.
"""

from .model import (
    EntryKind,
    ChangeState,
    ConflictState,
    File,
    Directory,
    Entry,
    CaptureMetadata,
    Snapshot,
    EntrySummary,
    WorkspaceStatus,
)
from .client import WorkspaceApi, DirectoryFetchOptions

__all__ = [
    "EntryKind",
    "ChangeState",
    "ConflictState",
    "File",
    "Directory",
    "Entry",
    "CaptureMetadata",
    "Snapshot",
    "EntrySummary",
    "WorkspaceStatus",
    "WorkspaceApi",
    "DirectoryFetchOptions",
]
