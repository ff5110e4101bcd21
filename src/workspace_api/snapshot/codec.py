"""
Snapshot encoding and decoding.

Defines the JSON exchange schema shared by the capture tool (writer) and
the mock engine (reader):

    {
      "schema_version": 1,
      "metadata": {"captured_at_utc": ..., "tool_version": ..., "root_label": ...},
      "root": {"kind": "directory", "name": "", "path": "", "children": [...]}
    }

Files carry "size", "content_digest", "modified_time_unix_ms_utc",
"change_state", "conflict_state" and, when embedded, "content_b64".
Unknown fields are ignored so newer writers stay readable; a newer
"schema_version" is rejected.
"""

import base64
import binascii
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

from ..common.relative_path import RelativePath
from ..core.exceptions import (
    InvalidPathError,
    InvalidSnapshotError,
    SerializationError,
    SnapshotIoError,
    UnsupportedSchemaError,
)
from ..v1.model import (
    CaptureMetadata,
    ChangeState,
    ConflictState,
    Directory,
    Entry,
    EntryKind,
    File,
    Snapshot,
)

logger = logging.getLogger(__name__)


SCHEMA_VERSION = 1

T = TypeVar("T")


# ============================================================================
# Encoding
# ============================================================================

def entry_to_dict(entry: Entry) -> Dict[str, Any]:
    """Convert an entry (recursively) to its exchange dictionary."""
    if isinstance(entry, File):
        data = {
            "kind": EntryKind.FILE.value,
            "name": entry.name,
            "path": entry.path.as_str(),
            "size": entry.size,
            "content_digest": entry.content_digest,
            "modified_time_unix_ms_utc": entry.modified_time_unix_ms_utc,
            "change_state": entry.change_state.value,
            "conflict_state": entry.conflict_state.value,
        }
        if entry.content is not None:
            data["content_b64"] = base64.b64encode(entry.content).decode("ascii")
        return data

    data = {
        "kind": EntryKind.DIRECTORY.value,
        "name": entry.name,
        "path": entry.path.as_str(),
    }
    if entry.children is not None:
        data["children"] = [entry_to_dict(child) for child in entry.children]
    return data


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    """Convert a snapshot to its exchange dictionary."""
    return {
        "schema_version": snapshot.schema_version,
        "metadata": {
            "captured_at_utc": snapshot.metadata.captured_at_utc.isoformat(),
            "tool_version": snapshot.metadata.tool_version,
            "root_label": snapshot.metadata.root_label,
        },
        "root": entry_to_dict(snapshot.root),
    }


def encode_snapshot(snapshot: Snapshot, compact: bool = False) -> str:
    """
    Encode a snapshot as JSON.

    Args:
        snapshot: The snapshot to encode
        compact: Single-line output with sorted keys instead of indented output

    Returns:
        JSON text (no trailing newline)

    Raises:
        SerializationError: If the tree is nested too deeply to encode
    """
    try:
        data = snapshot_to_dict(snapshot)
        if compact:
            return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
        return json.dumps(data, indent=2, ensure_ascii=False)
    except RecursionError as e:
        raise SerializationError(f"Snapshot tree is nested too deeply to encode: {e}") from e


# ============================================================================
# Decoding
# ============================================================================

def _require(data: Dict[str, Any], key: str, expected: Type[T], where: str) -> T:
    if key not in data:
        raise SerializationError(f"Missing field '{key}' in {where}")
    value = data[key]
    # bool is a subclass of int
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise SerializationError(
            f"Field '{key}' in {where} must be {expected.__name__}, "
            f"got {type(value).__name__}"
        )
    return value


def _optional(data: Dict[str, Any], key: str, expected: Type[T], where: str, default: T) -> T:
    if data.get(key) is None:
        return default
    return _require(data, key, expected, where)


def _parse_enum(enum_cls, value: str, key: str, where: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise SerializationError(f"Unknown {key} '{value}' in {where}") from None


def _parse_path(value: str, where: str) -> RelativePath:
    try:
        return RelativePath(value)
    except InvalidPathError as e:
        raise SerializationError(f"Invalid path in {where}: {e}") from e


def entry_from_dict(data: Dict[str, Any], parent_path: Optional[RelativePath] = None) -> Entry:
    """
    Create an entry (recursively) from its exchange dictionary.

    When an entry has no "path" field it is derived from the parent path
    and the entry name; when it has one it is kept verbatim so structural
    validation can detect hand-edited mismatches.

    Raises:
        SerializationError: On missing fields, wrong types, unknown kinds or
            nesting deeper than the interpreter can decode
        InvalidSnapshotError: If an entry name disagrees with its path
    """
    try:
        return _entry_from_dict(data, parent_path)
    except RecursionError as e:
        raise SerializationError(f"Snapshot tree is nested too deeply to decode: {e}") from e


def _entry_from_dict(data: Dict[str, Any], parent_path: Optional[RelativePath]) -> Entry:
    if not isinstance(data, dict):
        raise SerializationError(f"Entry must be an object, got {type(data).__name__}")

    where = f"entry '{data.get('path', data.get('name', '?'))}'"
    kind = _parse_enum(EntryKind, _require(data, "kind", str, where), "kind", where)
    name = _require(data, "name", str, where)

    if data.get("path") is not None:
        path = _parse_path(_require(data, "path", str, where), where)
        if (path.file_name or "") != name:
            raise InvalidSnapshotError(
                f"Entry name '{name}' does not match its path '{path}'",
                path=path.as_str(),
            )
    elif parent_path is None:
        path = _parse_path(name, where)
    else:
        if not name:
            raise SerializationError(f"Entry below '{parent_path}' has an empty name")
        path = _parse_path(f"{parent_path.as_str()}/{name}" if parent_path.as_str() else name, where)

    if kind == EntryKind.FILE:
        content = None
        content_b64 = _optional(data, "content_b64", str, where, None)
        if content_b64 is not None:
            try:
                content = base64.b64decode(content_b64.encode("ascii"), validate=True)
            except (binascii.Error, UnicodeEncodeError) as e:
                raise SerializationError(f"Invalid base64 content in {where}: {e}") from e

        return File(
            path=path,
            size=_require(data, "size", int, where),
            content_digest=_require(data, "content_digest", str, where),
            modified_time_unix_ms_utc=_optional(data, "modified_time_unix_ms_utc", int, where, 0),
            content=content,
            change_state=_parse_enum(
                ChangeState,
                _optional(data, "change_state", str, where, ChangeState.UNCHANGED.value),
                "change_state",
                where,
            ),
            conflict_state=_parse_enum(
                ConflictState,
                _optional(data, "conflict_state", str, where, ConflictState.NONE.value),
                "conflict_state",
                where,
            ),
        )

    if data.get("children") is None:
        children = None
    else:
        raw_children: List[Any] = _require(data, "children", list, where)
        children = tuple(_entry_from_dict(child, path) for child in raw_children)
    return Directory(path=path, children=children)


def snapshot_from_dict(data: Dict[str, Any]) -> Snapshot:
    """
    Create a snapshot from its exchange dictionary.

    Raises:
        UnsupportedSchemaError: If the schema version is missing or newer than supported
        SerializationError: On any other malformed input
    """
    if not isinstance(data, dict):
        raise SerializationError(f"Snapshot must be an object, got {type(data).__name__}")

    version = data.get("schema_version")
    if not isinstance(version, int) or isinstance(version, bool) or not 1 <= version <= SCHEMA_VERSION:
        raise UnsupportedSchemaError(version, SCHEMA_VERSION)

    metadata = _require(data, "metadata", dict, "snapshot")
    captured_at = _require(metadata, "captured_at_utc", str, "metadata")
    try:
        captured_at_utc = datetime.fromisoformat(captured_at.replace("Z", "+00:00"))
    except ValueError as e:
        raise SerializationError(f"Invalid captured_at_utc '{captured_at}': {e}") from e

    root = entry_from_dict(_require(data, "root", dict, "snapshot"))
    if not isinstance(root, Directory):
        raise SerializationError("Snapshot root must be a directory")

    return Snapshot(
        root=root,
        metadata=CaptureMetadata(
            captured_at_utc=captured_at_utc,
            tool_version=_require(metadata, "tool_version", str, "metadata"),
            root_label=_optional(metadata, "root_label", str, "metadata", ""),
        ),
        schema_version=version,
    )


def decode_snapshot(text: str) -> Snapshot:
    """
    Decode a snapshot from JSON text.

    Raises:
        SerializationError: If the text is not a valid snapshot encoding
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SerializationError(f"Failed to parse snapshot JSON: {e}") from e
    except RecursionError as e:
        raise SerializationError(f"Snapshot JSON is nested too deeply to decode: {e}") from e
    return snapshot_from_dict(data)


# ============================================================================
# File I/O
# ============================================================================

def save_snapshot(snapshot: Snapshot, path: Path, compact: bool = False) -> None:
    """Write a snapshot to a JSON file."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(encode_snapshot(snapshot, compact=compact))
            f.write("\n")
    except OSError as e:
        raise SnapshotIoError(f"Failed to write snapshot to {path}: {e}", path=str(path)) from e

    logger.info(f"Saved snapshot to: {path}")


def load_snapshot(path: Path) -> Snapshot:
    """
    Load a snapshot from a JSON file.

    Raises:
        SnapshotIoError: If the file cannot be read
        SerializationError: If the content is not a valid snapshot encoding
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SnapshotIoError(f"Failed to read snapshot from {path}: {e}", path=str(path)) from e

    snapshot = decode_snapshot(text)
    logger.info(f"Loaded snapshot from: {path}")
    return snapshot
