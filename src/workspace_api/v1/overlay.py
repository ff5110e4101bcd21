"""
Engine-local overlay of staged changes.

The mock engine never mutates its loaded snapshot. Writes, new directories
and deletions are recorded here instead, keyed by path, and reads consult
the overlay before falling back to the snapshot.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ..common.relative_path import RelativePath
from ..snapshot.canonical import compute_content_digest
from .model import ChangeState, EntryKind, EntrySummary


class OverlayKind(str, Enum):
    """What an overlay record stands for."""
    FILE = "file"
    DIRECTORY = "directory"
    DELETED = "deleted"


@dataclass(frozen=True)
class OverlayRecord:
    """
    One staged change.

    Attributes:
        path: Path the change applies to
        kind: Written file, created directory or deletion tombstone
        content: Staged bytes (files only)
        change_state: ADDED or MODIFIED for files and directories, DELETED for tombstones
        written_at_unix_ms_utc: When the change was applied
    """
    path: RelativePath
    kind: OverlayKind
    content: Optional[bytes] = field(default=None, repr=False)
    change_state: ChangeState = ChangeState.ADDED
    written_at_unix_ms_utc: int = 0

    @property
    def is_deleted(self) -> bool:
        return self.kind == OverlayKind.DELETED

    @property
    def entry_kind(self) -> Optional[EntryKind]:
        if self.kind == OverlayKind.FILE:
            return EntryKind.FILE
        if self.kind == OverlayKind.DIRECTORY:
            return EntryKind.DIRECTORY
        return None

    @classmethod
    def file(cls, path: RelativePath, content: bytes, change_state: ChangeState) -> "OverlayRecord":
        return cls(
            path=path,
            kind=OverlayKind.FILE,
            content=bytes(content),
            change_state=change_state,
            written_at_unix_ms_utc=int(time.time() * 1000),
        )

    @classmethod
    def directory(cls, path: RelativePath) -> "OverlayRecord":
        return cls(
            path=path,
            kind=OverlayKind.DIRECTORY,
            change_state=ChangeState.ADDED,
            written_at_unix_ms_utc=int(time.time() * 1000),
        )

    @classmethod
    def tombstone(cls, path: RelativePath) -> "OverlayRecord":
        return cls(
            path=path,
            kind=OverlayKind.DELETED,
            change_state=ChangeState.DELETED,
            written_at_unix_ms_utc=int(time.time() * 1000),
        )

    def to_summary(self, child_count: Optional[int] = None) -> EntrySummary:
        """Summarize a file or directory record."""
        if self.kind == OverlayKind.FILE:
            return EntrySummary(
                path=self.path,
                kind=EntryKind.FILE,
                size=len(self.content or b""),
                content_digest=compute_content_digest(self.content or b""),
                modified_time_unix_ms_utc=self.written_at_unix_ms_utc,
                change_state=self.change_state,
                staged=True,
            )
        if self.kind == OverlayKind.DIRECTORY:
            return EntrySummary(
                path=self.path,
                kind=EntryKind.DIRECTORY,
                change_state=self.change_state,
                child_count=child_count,
                staged=True,
            )
        raise ValueError(f"Tombstone for '{self.path}' has no summary")


class WorkspaceOverlay:
    """
    Lock-guarded map of staged changes keyed by path.

    The lock is held only for synchronous map operations, never across an
    await, so concurrent calls (or threads sharing one overlay) cannot
    interleave a partial update. The last write to be applied wins.
    """

    def __init__(self):
        self._records: Dict[RelativePath, OverlayRecord] = {}
        self._lock = threading.Lock()

    def get(self, path: RelativePath) -> Optional[OverlayRecord]:
        with self._lock:
            return self._records.get(path)

    def put(self, record: OverlayRecord) -> None:
        with self._lock:
            self._records[record.path] = record

    def put_many(
        self,
        records: Iterable[OverlayRecord],
        discard: Iterable[RelativePath] = (),
    ) -> None:
        """Apply several records and drop several paths atomically."""
        with self._lock:
            for path in discard:
                self._records.pop(path, None)
            for record in records:
                self._records[record.path] = record

    def children_of(self, directory: RelativePath) -> List[OverlayRecord]:
        """Records (tombstones included) whose parent is ``directory``."""
        with self._lock:
            return [
                record for path, record in self._records.items()
                if path.parent == directory
            ]

    def records(self) -> List[OverlayRecord]:
        """All records, ordered by path."""
        with self._lock:
            return sorted(self._records.values(), key=lambda record: record.path)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, path: RelativePath) -> bool:
        with self._lock:
            return path in self._records
