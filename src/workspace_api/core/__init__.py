"""
Core subpackage for the workspace API.

Contains exceptions and logging utilities.
"""

from .exceptions import (
    WorkspaceError,
    SnapshotIoError,
    SerializationError,
    InvalidSnapshotError,
    UnsupportedSchemaError,
    EngineStateError,
    WorkspaceCallError,
    EntryNotFoundError,
    EntryNotADirectoryError,
    EntryNotAFileError,
    EntryExistsError,
    InvalidPathError,
)

__all__ = [
    "WorkspaceError",
    "SnapshotIoError",
    "SerializationError",
    "InvalidSnapshotError",
    "UnsupportedSchemaError",
    "EngineStateError",
    "WorkspaceCallError",
    "EntryNotFoundError",
    "EntryNotADirectoryError",
    "EntryNotAFileError",
    "EntryExistsError",
    "InvalidPathError",
]
