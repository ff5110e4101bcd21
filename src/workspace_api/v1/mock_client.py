"""
Mock workspace engine.

Serves the WorkspaceApi contract from a captured snapshot, with simulated
per-call latency and an engine-local overlay for staged writes. Intended for
exercising integration code (loading states, error handling, ordering)
without a live backend.
"""

import asyncio
import hashlib
import logging
import random
import uuid
from collections import deque
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import AsyncIterator, Deque, Dict, List, Optional, Tuple

from ..common.relative_path import PathLike, RelativePath
from ..core.exceptions import (
    EngineStateError,
    EntryExistsError,
    EntryNotADirectoryError,
    EntryNotAFileError,
    EntryNotFoundError,
    InvalidPathError,
    WorkspaceCallError,
)
from ..snapshot.canonical import compute_content_digest
from ..snapshot.codec import decode_snapshot, load_snapshot
from ..snapshot.validation import validate_snapshot
from .client import DirectoryFetchOptions, WorkspaceApi
from .latency import LatencyPolicy, UniformLatency
from .model import (
    ChangeState,
    Directory,
    Entry,
    EntryKind,
    EntrySummary,
    File,
    Snapshot,
    WorkspaceStatus,
)
from .overlay import OverlayKind, OverlayRecord, WorkspaceOverlay

logger = logging.getLogger(__name__)


DEFAULT_HISTORY_SIZE = 256


@dataclass
class CallRecord:
    """
    One simulated API invocation.

    Attributes:
        call_id: Unique identifier for the call
        operation: Name of the contract operation
        paths: Target path(s) as given by the caller
        issued_at: Event loop time when the call was issued
        delay_seconds: Sampled simulated latency
        scheduled_completion: issued_at + delay_seconds
        completed_at: Event loop time when the call finished
        outcome: "ok", "cancelled" or the error kind of a failed call
    """
    call_id: str
    operation: str
    paths: Tuple[str, ...]
    issued_at: float
    delay_seconds: float
    scheduled_completion: float
    completed_at: Optional[float] = None
    outcome: Optional[str] = None


@dataclass(frozen=True)
class _Node:
    """An entry of the merged (overlay over snapshot) view."""
    path: RelativePath
    kind: EntryKind
    base: Optional[Entry] = None
    record: Optional[OverlayRecord] = None


def placeholder_content(file: File) -> bytes:
    """
    Deterministic stand-in bytes for a file captured without content.

    The result is exactly ``file.size`` bytes long and depends only on the
    file's digest.
    """
    if file.size <= 0:
        return b""
    try:
        seed = bytes.fromhex(file.content_digest)
    except ValueError:
        seed = b""
    if not seed:
        seed = hashlib.sha256(file.content_digest.encode("utf-8")).digest()
    repeats = file.size // len(seed) + 1
    return (seed * repeats)[:file.size]


def _describe_path(path: PathLike) -> str:
    if isinstance(path, (list, tuple)):
        return "/".join(str(segment) for segment in path)
    return str(path)


class MockWorkspaceApi(WorkspaceApi):
    """
    Snapshot-backed implementation of the workspace contract.

    Lifecycle:
    - Uninitialized: created without a snapshot; every operation raises
      EngineStateError
    - Ready: after load(); the snapshot is never replaced or mutated

    Every call samples the latency policy, waits for at least that long and
    then answers from the overlay and the snapshot. A delay of zero resolves
    without suspending. Cancelling a call while it waits releases its timer
    and leaves the overlay untouched.
    """

    def __init__(
        self,
        latency: Optional[LatencyPolicy] = None,
        overlay: Optional[WorkspaceOverlay] = None,
        rng: Optional[random.Random] = None,
        seed: Optional[int] = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        """
        Initialize the mock engine.

        Args:
            latency: Latency policy (default: uniform 0..1 ms, i.e. no delay)
            overlay: Overlay for staged changes (default: a new, empty overlay)
            rng: Random generator used to sample latencies
            seed: Seed for a new random generator when rng is not given
            history_size: Number of finished calls kept in call_history
        """
        self.latency = latency or UniformLatency(0, 1)
        self.overlay = overlay if overlay is not None else WorkspaceOverlay()
        self._rng = rng or random.Random(seed)

        self._snapshot: Optional[Snapshot] = None
        self._status: Optional[WorkspaceStatus] = None

        self._in_flight: Dict[str, CallRecord] = {}
        self.call_history: Deque[CallRecord] = deque(maxlen=history_size)

    # ------------------------------------------------------------------
    # Construction and loading
    # ------------------------------------------------------------------

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot, **kwargs) -> "MockWorkspaceApi":
        api = cls(**kwargs)
        api.load(snapshot)
        return api

    @classmethod
    def from_json(cls, json_data: str, **kwargs) -> "MockWorkspaceApi":
        api = cls(**kwargs)
        api.load_json(json_data)
        return api

    @classmethod
    def from_file(cls, json_file_path: Path, **kwargs) -> "MockWorkspaceApi":
        api = cls(**kwargs)
        api.load_file(json_file_path)
        return api

    @classmethod
    def from_config(cls, config, snapshot: Optional[Snapshot] = None) -> "MockWorkspaceApi":
        """
        Build an engine from a WorkspaceConfig.

        The snapshot is loaded from ``mock_client.snapshot_path`` unless one
        is passed in.
        """
        mock_config = config.get_mock_client_config()
        api = cls(
            latency=config.build_latency_policy(),
            seed=mock_config.get("seed"),
            history_size=mock_config.get("history_size", DEFAULT_HISTORY_SIZE),
        )

        if snapshot is not None:
            api.load(snapshot)
        elif mock_config.get("snapshot_path"):
            api.load_file(Path(mock_config["snapshot_path"]))
        else:
            raise EngineStateError("No snapshot given and mock_client.snapshot_path is not set")

        return api

    def load(self, snapshot: Snapshot) -> None:
        """
        Validate and load a snapshot, moving the engine to Ready.

        Raises:
            EngineStateError: If a snapshot was already loaded
            InvalidSnapshotError: If the tree violates a structural invariant
        """
        if self._snapshot is not None:
            raise EngineStateError("A snapshot is already loaded; create a new engine instead")

        validate_snapshot(snapshot)

        root = snapshot.root
        self._status = WorkspaceStatus(
            root_label=snapshot.metadata.root_label,
            captured_at_utc=snapshot.metadata.captured_at_utc,
            tool_version=snapshot.metadata.tool_version,
            schema_version=snapshot.schema_version,
            file_count=snapshot.file_count,
            directory_count=snapshot.directory_count,
            total_size_bytes=snapshot.total_size_bytes,
            change_states=root.change_states,
            conflict_states=root.conflict_states,
        )
        self._snapshot = snapshot

        logger.info(
            f"Loaded snapshot '{snapshot.metadata.root_label}' "
            f"({self._status.file_count} files, {self._status.directory_count} directories)"
        )

    def load_json(self, json_data: str) -> None:
        """Decode and load a snapshot from JSON text."""
        self.load(decode_snapshot(json_data))

    def load_file(self, json_file_path: Path) -> None:
        """Read, decode and load a snapshot file."""
        self.load(load_snapshot(Path(json_file_path)))

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> Snapshot:
        return self._require_ready()

    @property
    def in_flight_calls(self) -> List[CallRecord]:
        """Calls that are currently waiting out their simulated latency."""
        return list(self._in_flight.values())

    def reset_overlay(self) -> None:
        """Discard all staged changes."""
        self.overlay.clear()

    def get_name(self) -> str:
        return "mock"

    # ------------------------------------------------------------------
    # Call lifecycle
    # ------------------------------------------------------------------

    def _require_ready(self) -> Snapshot:
        if self._snapshot is None:
            raise EngineStateError("No snapshot loaded; call load() first")
        return self._snapshot

    @asynccontextmanager
    async def _simulated_call(self, operation: str, *paths: PathLike) -> AsyncIterator[CallRecord]:
        self._require_ready()
        loop = asyncio.get_running_loop()

        delay = self.latency.sample(self._rng)
        issued_at = loop.time()
        record = CallRecord(
            call_id=str(uuid.uuid4()),
            operation=operation,
            paths=tuple(_describe_path(path) for path in paths),
            issued_at=issued_at,
            delay_seconds=delay,
            scheduled_completion=issued_at + delay,
        )
        self._in_flight[record.call_id] = record
        context = {
            "call_id": record.call_id,
            "operation": operation,
            "path": ",".join(record.paths) or None,
        }

        try:
            if delay > 0:
                logger.debug(
                    f"Delaying {operation} by {delay * 1000:.0f} ms",
                    extra={**context, "delay_ms": round(delay * 1000)},
                )
                # asyncio may fire a timer slightly early; keep waiting
                # until the full delay has elapsed
                while True:
                    remaining = record.scheduled_completion - loop.time()
                    if remaining <= 0:
                        break
                    await asyncio.sleep(remaining)
            yield record
        except asyncio.CancelledError:
            record.outcome = "cancelled"
            logger.debug(f"Cancelled {operation}", extra=context)
            raise
        except WorkspaceCallError as e:
            record.outcome = e.kind
            raise
        except Exception:
            record.outcome = "error"
            raise
        else:
            record.outcome = "ok"
        finally:
            record.completed_at = loop.time()
            self._in_flight.pop(record.call_id, None)
            self.call_history.append(record)

    # ------------------------------------------------------------------
    # Merged view (overlay first, then snapshot)
    # ------------------------------------------------------------------

    def _root_node(self) -> _Node:
        return _Node(path=RelativePath.root(), kind=EntryKind.DIRECTORY, base=self._require_ready().root)

    @staticmethod
    def _merge(path: RelativePath, base: Optional[Entry], record: Optional[OverlayRecord]) -> Optional[_Node]:
        if record is not None:
            if record.is_deleted:
                return None
            if record.kind == OverlayKind.DIRECTORY and isinstance(base, Directory):
                return _Node(path=path, kind=EntryKind.DIRECTORY, base=base, record=record)
            return _Node(path=path, kind=record.entry_kind, record=record)
        if base is None:
            return None
        return _Node(path=path, kind=base.kind, base=base)

    def _child(self, node: _Node, name: str) -> Optional[_Node]:
        child_path = node.path.join(name)
        base_child = node.base.child(name) if isinstance(node.base, Directory) else None
        return self._merge(child_path, base_child, self.overlay.get(child_path))

    def _children(self, node: _Node) -> List[_Node]:
        """Visible children of a directory node, in canonical name order."""
        merged: Dict[str, _Node] = {}
        base = node.base if isinstance(node.base, Directory) else None

        if base is not None:
            for child in base.children or ():
                merged[child.name] = _Node(path=child.path, kind=child.kind, base=child)

        for record in self.overlay.children_of(node.path):
            name = record.path.file_name
            base_child = base.child(name) if base is not None else None
            child_node = self._merge(record.path, base_child, record)
            if child_node is None:
                merged.pop(name, None)
            else:
                merged[name] = child_node

        return [merged[name] for name in sorted(merged)]

    def _lookup(self, path: RelativePath) -> _Node:
        """
        Walk the merged tree segment by segment.

        Raises:
            EntryNotFoundError: If a segment is missing
            EntryNotADirectoryError: If a file is traversed as a directory
        """
        node = self._root_node()
        for segment in path.components:
            if node.kind == EntryKind.FILE:
                raise EntryNotADirectoryError(
                    f"Cannot resolve '{path}': '{node.path}' is a file",
                    path=path.as_str(),
                )
            child = self._child(node, segment)
            if child is None:
                raise EntryNotFoundError(f"No entry at '{path}'", path=path.as_str())
            node = child
        return node

    def _lookup_directory(self, path: RelativePath) -> _Node:
        node = self._lookup(path)
        if node.kind != EntryKind.DIRECTORY:
            raise EntryNotADirectoryError(f"'{path}' is a file", path=path.as_str())
        return node

    def _summarize(self, node: _Node) -> EntrySummary:
        child_count = len(self._children(node)) if node.kind == EntryKind.DIRECTORY else None
        if node.record is not None:
            return node.record.to_summary(child_count=child_count)
        if isinstance(node.base, File):
            return EntrySummary.from_entry(node.base)
        return EntrySummary(path=node.path, kind=EntryKind.DIRECTORY, child_count=child_count)

    def _file_entry(self, node: _Node) -> File:
        if node.record is not None:
            content = node.record.content or b""
            return File(
                path=node.path,
                size=len(content),
                content_digest=compute_content_digest(content),
                modified_time_unix_ms_utc=node.record.written_at_unix_ms_utc,
                content=content,
                change_state=node.record.change_state,
            )
        return node.base

    def _materialize(self, node: _Node, depth_remaining: Optional[int]) -> Directory:
        children: List[Entry] = []
        for child in self._children(node):
            if child.kind == EntryKind.FILE:
                children.append(self._file_entry(child))
            elif depth_remaining is not None and depth_remaining <= 0:
                children.append(Directory(path=child.path, children=None))
            else:
                next_depth = None if depth_remaining is None else depth_remaining - 1
                children.append(self._materialize(child, next_depth))
        return Directory(path=node.path, children=tuple(children))

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def list_entries(self, path: PathLike) -> List[EntrySummary]:
        async with self._simulated_call("list_entries", path):
            node = self._lookup_directory(RelativePath.coerce(path))
            return [self._summarize(child) for child in self._children(node)]

    async def read_file(self, path: PathLike) -> bytes:
        async with self._simulated_call("read_file", path):
            relative_path = RelativePath.coerce(path)
            node = self._lookup(relative_path)
            if node.kind != EntryKind.FILE:
                raise EntryNotAFileError(f"'{relative_path}' is a directory", path=relative_path.as_str())
            if node.record is not None:
                return node.record.content or b""
            if node.base.content is not None:
                return node.base.content
            return placeholder_content(node.base)

    async def stat(self, path: PathLike) -> EntrySummary:
        async with self._simulated_call("stat", path):
            return self._summarize(self._lookup(RelativePath.coerce(path)))

    async def get_status(self) -> WorkspaceStatus:
        async with self._simulated_call("get_status"):
            staged = [record for record in self.overlay.records() if record.kind != OverlayKind.DIRECTORY]
            return replace(
                self._status,
                staged_change_count=len(self.overlay),
                change_states=self._status.change_states | {record.change_state for record in staged},
            )

    async def fetch_directory(
        self,
        path: PathLike,
        options: Optional[DirectoryFetchOptions] = None,
    ) -> Directory:
        options = options or DirectoryFetchOptions()
        async with self._simulated_call("fetch_directory", path):
            node = self._lookup_directory(RelativePath.coerce(path))

            if len(self.overlay) == 0 and node.record is None:
                directory = node.base
                if options.depth_limit is not None:
                    directory = directory.prune_to_depth(options.depth_limit)
            else:
                directory = self._materialize(node, options.depth_limit)

            if options.filter_string:
                needle = options.filter_string.casefold()
                directory = replace(
                    directory,
                    children=tuple(
                        child for child in directory.children
                        if needle in child.name.casefold()
                    ),
                )
            return directory

    # ------------------------------------------------------------------
    # Write operations (overlay only)
    # ------------------------------------------------------------------

    def _lookup_parent(self, path: RelativePath) -> _Node:
        return self._lookup_directory(path.parent)

    async def write_file(self, path: PathLike, data: bytes) -> EntrySummary:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"write_file expects bytes, got {type(data).__name__}")

        async with self._simulated_call("write_file", path):
            relative_path = RelativePath.coerce(path)
            if relative_path.is_empty():
                raise EntryNotAFileError("The workspace root is a directory", path="")

            parent = self._lookup_parent(relative_path)
            existing = self._child(parent, relative_path.file_name)
            if existing is not None and existing.kind == EntryKind.DIRECTORY:
                raise EntryNotAFileError(f"'{relative_path}' is a directory", path=relative_path.as_str())

            in_snapshot = isinstance(self._snapshot.find(relative_path), File)
            record = OverlayRecord.file(
                relative_path,
                bytes(data),
                ChangeState.MODIFIED if in_snapshot else ChangeState.ADDED,
            )
            self.overlay.put(record)
            logger.debug(f"Staged write of {len(record.content)} bytes to '{relative_path}'")
            return record.to_summary()

    async def create_directory(self, path: PathLike) -> EntrySummary:
        async with self._simulated_call("create_directory", path):
            relative_path = RelativePath.coerce(path)
            if relative_path.is_empty():
                raise EntryExistsError("The workspace root already exists", path="")

            parent = self._lookup_parent(relative_path)
            if self._child(parent, relative_path.file_name) is not None:
                raise EntryExistsError(f"'{relative_path}' already exists", path=relative_path.as_str())

            record = OverlayRecord.directory(relative_path)
            self.overlay.put(record)
            logger.debug(f"Staged new directory '{relative_path}'")
            return record.to_summary(child_count=0)

    async def delete_entry(self, path: PathLike) -> None:
        async with self._simulated_call("delete_entry", path):
            relative_path = RelativePath.coerce(path)
            if relative_path.is_empty():
                raise InvalidPathError("The workspace root cannot be deleted", path="")

            node = self._lookup(relative_path)

            doomed = [node]
            stack = [node] if node.kind == EntryKind.DIRECTORY else []
            while stack:
                for child in self._children(stack.pop()):
                    doomed.append(child)
                    if child.kind == EntryKind.DIRECTORY:
                        stack.append(child)

            # Paths that exist in the snapshot need a tombstone; overlay-only
            # entries are simply dropped
            tombstones = []
            discarded = []
            for entry in doomed:
                if self._snapshot.find(entry.path) is not None:
                    tombstones.append(OverlayRecord.tombstone(entry.path))
                else:
                    discarded.append(entry.path)

            self.overlay.put_many(tombstones, discard=discarded)
            logger.debug(f"Staged deletion of '{relative_path}' ({len(doomed)} entries)")
