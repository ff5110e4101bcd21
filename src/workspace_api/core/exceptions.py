"""
Custom exceptions for the workspace API.

Capture-time and load-time errors abort the whole operation. Per-call errors
(subclasses of WorkspaceCallError) are raised to the caller of a single
operation and never affect the engine or other in-flight calls.
"""

from typing import Any, Optional


class WorkspaceError(Exception):
    """Base exception for all workspace API errors."""
    pass


class SnapshotIoError(WorkspaceError):
    """
    Filesystem access failure while capturing or reading a snapshot.

    Raised when:
    - The capture root does not exist or is not a directory
    - A file or directory cannot be read during the walk
    - A symlink loop is found while following links
    - A snapshot file cannot be read or written
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class SerializationError(WorkspaceError):
    """
    Malformed or unsupported snapshot encoding.

    Raised when:
    - The input is not valid JSON
    - Required fields are missing or have the wrong type
    - An entry has an unknown kind
    """
    pass


class InvalidSnapshotError(WorkspaceError):
    """
    Structurally invalid snapshot tree, detected at load time.

    Raised when:
    - Two entries share a path or a name within one directory
    - A child path is not its parent path extended by its own name
    - Children are not in canonical name order
    - Embedded content disagrees with the recorded size or digest
    """

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class UnsupportedSchemaError(SerializationError, InvalidSnapshotError):
    """Snapshot was written with a schema version this package cannot read."""

    def __init__(self, found_version: Any, supported_version: int):
        InvalidSnapshotError.__init__(
            self,
            f"Unsupported snapshot schema version {found_version!r} "
            f"(supported: <= {supported_version})",
        )
        self.found_version = found_version
        self.supported_version = supported_version


class EngineStateError(WorkspaceError):
    """Mock engine used before a snapshot was loaded, or loaded twice."""
    pass


class WorkspaceCallError(WorkspaceError):
    """
    Error returned by a single workspace operation.

    The ``kind`` attribute lets callers branch on the error without
    matching on exception classes.
    """

    kind = "call_error"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class EntryNotFoundError(WorkspaceCallError):
    """No entry exists at the requested path."""
    kind = "not_found"


class EntryNotADirectoryError(WorkspaceCallError):
    """The requested path (or one of its ancestors) names a file."""
    kind = "not_a_directory"


class EntryNotAFileError(WorkspaceCallError):
    """The requested path names a directory."""
    kind = "not_a_file"


class EntryExistsError(WorkspaceCallError):
    """An entry already exists at the requested path."""
    kind = "already_exists"


class InvalidPathError(WorkspaceCallError, ValueError):
    """The path is not a valid workspace-relative path for this operation."""
    kind = "invalid_path"
