"""
Unit tests for snapshot encoding and decoding.
"""

import json
from datetime import datetime, timezone

import pytest

from workspace_api.common.relative_path import RelativePath
from workspace_api.core.exceptions import (
    InvalidSnapshotError,
    SerializationError,
    SnapshotIoError,
    UnsupportedSchemaError,
)
from workspace_api.snapshot.codec import (
    SCHEMA_VERSION,
    decode_snapshot,
    encode_snapshot,
    entry_from_dict,
    entry_to_dict,
    load_snapshot,
    save_snapshot,
    snapshot_to_dict,
)
from workspace_api.v1.model import CaptureMetadata, ChangeState, ConflictState, Directory, File, Snapshot


def minimal_document(**overrides):
    document = {
        "schema_version": 1,
        "metadata": {
            "captured_at_utc": "2024-01-01T00:00:00+00:00",
            "tool_version": "0.1.0",
            "root_label": "root",
        },
        "root": {
            "kind": "directory",
            "name": "",
            "path": "",
            "children": [
                {
                    "kind": "file",
                    "name": "a.txt",
                    "path": "a.txt",
                    "size": 3,
                    "content_digest": "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad",
                    "modified_time_unix_ms_utc": 1700000000000,
                    "change_state": "unchanged",
                    "conflict_state": "none",
                },
            ],
        },
    }
    document.update(overrides)
    return document


class TestRoundTrip:
    """Encoding then decoding yields an equal snapshot."""

    def test_pretty_round_trip(self, snapshot):
        assert decode_snapshot(encode_snapshot(snapshot)) == snapshot

    def test_compact_round_trip_with_content(self, embedded_snapshot):
        decoded = decode_snapshot(encode_snapshot(embedded_snapshot, compact=True))

        assert decoded == embedded_snapshot
        assert decoded.find("sub/b.txt").content == b"hello"

    def test_compact_is_single_line_with_sorted_keys(self, snapshot):
        text = encode_snapshot(snapshot, compact=True)

        assert "\n" not in text
        assert text.startswith('{"metadata":')
        assert json.loads(text) == snapshot_to_dict(snapshot)

    def test_pretty_is_indented(self, snapshot):
        text = encode_snapshot(snapshot)

        assert "\n  " in text
        assert not text.endswith("\n")

    def test_unloaded_directory_round_trip(self, snapshot):
        """Unloaded directories are written without a children field."""
        pruned = snapshot.root.prune_to_depth(0)
        data = entry_to_dict(pruned)

        assert "children" not in data["children"][1]

        decoded = entry_from_dict(json.loads(json.dumps(data)))

        assert decoded == pruned
        assert not decoded.child("sub").is_loaded


class TestDecoding:
    """Tests for decoding hand-written documents."""

    def test_minimal_document(self):
        snapshot = decode_snapshot(json.dumps(minimal_document()))

        file = snapshot.find("a.txt")
        assert isinstance(file, File)
        assert file.size == 3
        assert file.modified_time_unix_ms_utc == 1700000000000
        assert file.change_state == ChangeState.UNCHANGED
        assert file.conflict_state == ConflictState.NONE
        assert snapshot.metadata.root_label == "root"
        assert snapshot.schema_version == SCHEMA_VERSION

    def test_unknown_fields_are_ignored(self):
        document = minimal_document(future_field={"x": 1})
        document["root"]["children"][0]["owner"] = "someone"

        snapshot = decode_snapshot(json.dumps(document))

        assert snapshot.find("a.txt").size == 3

    def test_paths_are_derived_when_missing(self):
        document = minimal_document()
        document["root"]["children"].append({
            "kind": "directory",
            "name": "sub",
            "children": [
                {"kind": "file", "name": "b.txt", "size": 5, "content_digest": "00" * 32},
            ],
        })

        snapshot = decode_snapshot(json.dumps(document))

        assert snapshot.find("sub/b.txt").path == RelativePath("sub/b.txt")

    def test_optional_state_fields_default(self):
        document = minimal_document()
        del document["root"]["children"][0]["change_state"]
        del document["root"]["children"][0]["conflict_state"]
        del document["root"]["children"][0]["modified_time_unix_ms_utc"]

        file = decode_snapshot(json.dumps(document)).find("a.txt")

        assert file.change_state == ChangeState.UNCHANGED
        assert file.conflict_state == ConflictState.NONE
        assert file.modified_time_unix_ms_utc == 0

    def test_zulu_timestamp(self):
        document = minimal_document()
        document["metadata"]["captured_at_utc"] = "2024-01-01T00:00:00Z"

        snapshot = decode_snapshot(json.dumps(document))

        assert snapshot.metadata.captured_at_utc.utcoffset().total_seconds() == 0


class TestSchemaVersion:
    """Tests for schema version handling."""

    @pytest.mark.parametrize("version", [2, 0, "1", None, True])
    def test_unsupported_versions_rejected(self, version):
        with pytest.raises(UnsupportedSchemaError):
            decode_snapshot(json.dumps(minimal_document(schema_version=version)))

    def test_missing_version_rejected(self):
        document = minimal_document()
        del document["schema_version"]

        with pytest.raises(UnsupportedSchemaError):
            decode_snapshot(json.dumps(document))

    def test_unsupported_schema_is_both_error_kinds(self):
        with pytest.raises(SerializationError) as exc_info:
            decode_snapshot(json.dumps(minimal_document(schema_version=99)))

        assert isinstance(exc_info.value, InvalidSnapshotError)
        assert exc_info.value.found_version == 99


class TestMalformedInput:
    """Tests for malformed documents."""

    def test_invalid_json(self):
        with pytest.raises(SerializationError):
            decode_snapshot("{not json")

    def test_top_level_not_object(self):
        with pytest.raises(SerializationError):
            decode_snapshot("[]")

    def test_missing_required_field(self):
        document = minimal_document()
        del document["root"]["children"][0]["size"]

        with pytest.raises(SerializationError, match="size"):
            decode_snapshot(json.dumps(document))

    def test_wrong_field_type(self):
        document = minimal_document()
        document["root"]["children"][0]["size"] = "3"

        with pytest.raises(SerializationError):
            decode_snapshot(json.dumps(document))

    def test_unknown_kind(self):
        document = minimal_document()
        document["root"]["children"][0]["kind"] = "symlink"

        with pytest.raises(SerializationError, match="kind"):
            decode_snapshot(json.dumps(document))

    def test_unknown_change_state(self):
        document = minimal_document()
        document["root"]["children"][0]["change_state"] = "renamed"

        with pytest.raises(SerializationError):
            decode_snapshot(json.dumps(document))

    def test_root_must_be_directory(self):
        document = minimal_document()
        document["root"] = document["root"]["children"][0]
        document["root"]["name"] = ""
        document["root"]["path"] = ""

        with pytest.raises(SerializationError):
            decode_snapshot(json.dumps(document))

    def test_invalid_path(self):
        document = minimal_document()
        document["root"]["children"][0]["path"] = "../a.txt"

        with pytest.raises(SerializationError):
            decode_snapshot(json.dumps(document))

    def test_name_path_mismatch(self):
        document = minimal_document()
        document["root"]["children"][0]["name"] = "other.txt"

        with pytest.raises(InvalidSnapshotError):
            decode_snapshot(json.dumps(document))

    def test_invalid_base64(self):
        document = minimal_document()
        document["root"]["children"][0]["content_b64"] = "***"

        with pytest.raises(SerializationError):
            decode_snapshot(json.dumps(document))


NESTING_DEPTH = 5000


def deep_entry_dict(depth):
    """A chain of nested directories ending in one file, without "path" fields."""
    node = {"kind": "file", "name": "leaf.txt", "size": 0, "content_digest": "0" * 64}
    for _ in range(depth):
        node = {"kind": "directory", "name": "d", "children": [node]}
    return {"kind": "directory", "name": "", "children": [node]}


class TestDeeplyNestedInput:
    """Trees nested beyond the recursion limit fail with SerializationError."""

    def test_decode_deep_json(self):
        opening = '{"kind":"directory","name":"d","children":[' * NESTING_DEPTH
        closing = "]}" * NESTING_DEPTH
        root = '{"kind":"directory","name":"","children":[' + opening + closing + "]}"
        text = (
            '{"schema_version":1,'
            '"metadata":{"captured_at_utc":"2024-01-01T00:00:00+00:00","tool_version":"0.1.0"},'
            '"root":' + root + "}"
        )

        with pytest.raises(SerializationError, match="nested too deeply"):
            decode_snapshot(text)

    def test_entry_from_deep_dict(self):
        with pytest.raises(SerializationError, match="nested too deeply"):
            entry_from_dict(deep_entry_dict(NESTING_DEPTH))

    def test_encode_deep_tree(self):
        entry = File(
            path=RelativePath("/".join(["d"] * NESTING_DEPTH + ["leaf.txt"])),
            size=0,
            content_digest="0" * 64,
        )
        for depth in range(NESTING_DEPTH, -1, -1):
            entry = Directory(path=RelativePath("/".join(["d"] * depth)), children=(entry,))
        snapshot = Snapshot(
            root=entry,
            metadata=CaptureMetadata(
                captured_at_utc=datetime(2024, 1, 1, tzinfo=timezone.utc),
                tool_version="0.1.0",
                root_label="root",
            ),
        )

        with pytest.raises(SerializationError, match="nested too deeply"):
            encode_snapshot(snapshot)


class TestFileIo:
    """Tests for save_snapshot and load_snapshot."""

    def test_save_and_load(self, snapshot, tmp_path):
        path = tmp_path / "out" / "snapshot.json"

        save_snapshot(snapshot, path, compact=True)

        assert path.read_text(encoding="utf-8").endswith("\n")
        assert load_snapshot(path) == snapshot

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(SnapshotIoError) as exc_info:
            load_snapshot(tmp_path / "missing.json")

        assert exc_info.value.path.endswith("missing.json")

    def test_load_directory_fails(self, tmp_path):
        with pytest.raises(SnapshotIoError):
            load_snapshot(tmp_path)

    def test_directory_entry_without_children_is_unloaded(self):
        entry = entry_from_dict({"kind": "directory", "name": "sub", "path": "sub"})

        assert isinstance(entry, Directory)
        assert not entry.is_loaded
