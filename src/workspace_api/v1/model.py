"""
Core data models for version 1 of the workspace API.

A snapshot tree is made of two entry variants, File and Directory. All
models are frozen dataclasses: once a tree is built it is never mutated, and
operations such as depth pruning return new values.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Iterator, Optional, Tuple, Union

from ..common.relative_path import PathLike, RelativePath


class EntryKind(str, Enum):
    """Discriminant of the Entry variant."""
    FILE = "file"
    DIRECTORY = "directory"


class ChangeState(str, Enum):
    """Change state of an entry relative to the base version."""
    UNCHANGED = "unchanged"
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class ConflictState(str, Enum):
    """
    Conflict state of an entry.

    Captured data is conflict-free by convention, so the capture tool
    always records NONE; other values only appear in hand-edited snapshots.
    """
    NONE = "none"
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"
    INCOMING = "incoming"


@dataclass(frozen=True)
class File:
    """
    A plain file in the snapshot tree.

    Attributes:
        path: Full path of the file from the tree root
        size: Size in bytes
        content_digest: Hex SHA256 of the file content
        modified_time_unix_ms_utc: Last modification time in Unix milliseconds
        content: Raw bytes, only when the capture embedded them
        change_state: Change state relative to the base version
        conflict_state: Conflict state
    """
    path: RelativePath
    size: int
    content_digest: str
    modified_time_unix_ms_utc: int = 0
    content: Optional[bytes] = field(default=None, repr=False)
    change_state: ChangeState = ChangeState.UNCHANGED
    conflict_state: ConflictState = ConflictState.NONE

    @property
    def kind(self) -> EntryKind:
        return EntryKind.FILE

    @property
    def name(self) -> str:
        return self.path.file_name or ""

    @property
    def has_content(self) -> bool:
        return self.content is not None


@dataclass(frozen=True)
class Directory:
    """
    A directory in the snapshot tree.

    Attributes:
        path: Full path of the directory ("" for the root)
        children: Child entries ordered by name, or None when the directory
            has not been loaded (see prune_to_depth)
    """
    path: RelativePath
    children: Optional[Tuple["Entry", ...]] = ()

    @property
    def kind(self) -> EntryKind:
        return EntryKind.DIRECTORY

    @property
    def name(self) -> str:
        return self.path.file_name or ""

    @property
    def is_loaded(self) -> bool:
        return self.children is not None

    def child(self, name: str) -> Optional["Entry"]:
        """Return the direct child with the given name, if any."""
        for entry in self.children or ():
            if entry.name == name:
                return entry
        return None

    def iter_entries(self) -> Iterator["Entry"]:
        """Yield all loaded descendants depth-first, in name order."""
        for entry in self.children or ():
            yield entry
            if isinstance(entry, Directory):
                yield from entry.iter_entries()

    def prune_to_depth(self, depth_limit: int) -> "Directory":
        """
        Return a copy with sub-directories beyond ``depth_limit`` unloaded.

        A depth limit of 0 keeps this directory's direct children but
        unloads every sub-directory. Files are never removed.
        """
        if self.children is None:
            return self

        pruned = []
        for entry in self.children:
            if isinstance(entry, Directory):
                if depth_limit > 0:
                    pruned.append(entry.prune_to_depth(depth_limit - 1))
                else:
                    pruned.append(replace(entry, children=None))
            else:
                pruned.append(entry)
        return replace(self, children=tuple(pruned))

    @property
    def change_states(self) -> FrozenSet[ChangeState]:
        """Union of the change states of all loaded descendant files."""
        return frozenset(
            entry.change_state for entry in self.iter_entries()
            if isinstance(entry, File)
        )

    @property
    def conflict_states(self) -> FrozenSet[ConflictState]:
        """Union of the conflict states of all loaded descendant files."""
        return frozenset(
            entry.conflict_state for entry in self.iter_entries()
            if isinstance(entry, File)
        )


Entry = Union[File, Directory]


@dataclass(frozen=True)
class CaptureMetadata:
    """
    Metadata recorded by the capture tool.

    Attributes:
        captured_at_utc: When the capture ran
        tool_version: Version of the tool that produced the snapshot
        root_label: Human label of the captured root (usually its directory name)
    """
    captured_at_utc: datetime
    tool_version: str
    root_label: str


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable capture of a directory tree at one point in time.
    """
    root: Directory
    metadata: CaptureMetadata
    schema_version: int = 1

    def iter_entries(self) -> Iterator[Entry]:
        return self.root.iter_entries()

    def find(self, path: PathLike) -> Optional[Entry]:
        """Walk the tree segment by segment; None if any segment is missing."""
        current: Entry = self.root
        for segment in RelativePath.coerce(path).components:
            if not isinstance(current, Directory):
                return None
            child = current.child(segment)
            if child is None:
                return None
            current = child
        return current

    @property
    def file_count(self) -> int:
        return sum(1 for entry in self.iter_entries() if isinstance(entry, File))

    @property
    def directory_count(self) -> int:
        """Number of directories below the root (the root is not counted)."""
        return sum(1 for entry in self.iter_entries() if isinstance(entry, Directory))

    @property
    def total_size_bytes(self) -> int:
        return sum(entry.size for entry in self.iter_entries() if isinstance(entry, File))

    @property
    def tree_digest(self) -> str:
        """Digest of the tree, ignoring capture metadata."""
        from ..snapshot.canonical import compute_tree_digest

        return compute_tree_digest(self.root)


@dataclass(frozen=True)
class EntrySummary:
    """
    Metadata view of one entry, as returned by list_entries and stat.

    Attributes:
        path: Full path of the entry
        kind: File or directory
        size: Size in bytes (files only)
        content_digest: Hex SHA256 of the content (files only)
        modified_time_unix_ms_utc: Last modification time (files only)
        change_state: Change state of the entry
        conflict_state: Conflict state of the entry
        child_count: Number of visible children (directories only)
        staged: True when the entry comes from the engine overlay
    """
    path: RelativePath
    kind: EntryKind
    size: Optional[int] = None
    content_digest: Optional[str] = None
    modified_time_unix_ms_utc: Optional[int] = None
    change_state: ChangeState = ChangeState.UNCHANGED
    conflict_state: ConflictState = ConflictState.NONE
    child_count: Optional[int] = None
    staged: bool = False

    @property
    def name(self) -> str:
        return self.path.file_name or ""

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind == EntryKind.DIRECTORY

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntrySummary":
        """Summarize a snapshot entry."""
        if isinstance(entry, File):
            return cls(
                path=entry.path,
                kind=EntryKind.FILE,
                size=entry.size,
                content_digest=entry.content_digest,
                modified_time_unix_ms_utc=entry.modified_time_unix_ms_utc,
                change_state=entry.change_state,
                conflict_state=entry.conflict_state,
            )
        return cls(
            path=entry.path,
            kind=EntryKind.DIRECTORY,
            child_count=len(entry.children) if entry.children is not None else None,
        )


@dataclass(frozen=True)
class WorkspaceStatus:
    """
    Summary of a workspace backend.

    Attributes:
        root_label: Label of the captured root
        captured_at_utc: When the snapshot was captured
        tool_version: Version of the capture tool
        schema_version: Snapshot schema version
        file_count: Number of files in the snapshot
        directory_count: Number of directories below the root
        total_size_bytes: Sum of all file sizes
        staged_change_count: Number of overlay records (writes, deletions)
        change_states: Change states of the snapshot files plus those of
            staged file writes and deletions
        conflict_states: Aggregated conflict states of the snapshot (staged
            changes never carry a conflict)
    """
    root_label: str
    captured_at_utc: datetime
    tool_version: str
    schema_version: int
    file_count: int
    directory_count: int
    total_size_bytes: int
    staged_change_count: int = 0
    change_states: FrozenSet[ChangeState] = frozenset()
    conflict_states: FrozenSet[ConflictState] = frozenset()
