"""
Snapshot module for capturing and exchanging workspace trees.

This module provides:
- Canonical hashing: Stable content and tree digests
- Codec: Versioned JSON encoding of snapshots (pretty or compact)
- Validation: Structural checks run before a snapshot is served
"""

from .canonical import (
    canonicalize,
    compute_content_digest,
    compute_file_digest,
    compute_tree_digest,
    verify_content_digest,
)
from .codec import (
    SCHEMA_VERSION,
    encode_snapshot,
    decode_snapshot,
    snapshot_to_dict,
    snapshot_from_dict,
    save_snapshot,
    load_snapshot,
)
from .validation import validate_snapshot

__all__ = [
    "canonicalize",
    "compute_content_digest",
    "compute_file_digest",
    "compute_tree_digest",
    "verify_content_digest",
    "SCHEMA_VERSION",
    "encode_snapshot",
    "decode_snapshot",
    "snapshot_to_dict",
    "snapshot_from_dict",
    "save_snapshot",
    "load_snapshot",
    "validate_snapshot",
]
