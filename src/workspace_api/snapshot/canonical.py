"""
Canonical JSON serialization and content hashing.

Provides stable, platform-independent serialization for hashing:
- Keys are sorted recursively
- No insignificant whitespace
- Consistent null handling

File names are hashed exactly as captured; no unicode normalization is
applied because two differently-normalized names are distinct entries on
disk.
"""

import hashlib
import json
from pathlib import Path
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from ..v1.model import Directory, File


DIGEST_CHUNK_SIZE = 1024 * 1024


def canonicalize(obj: Any) -> str:
    """
    Canonicalize a Python object to a stable JSON string.

    Args:
        obj: The object to canonicalize

    Returns:
        Canonical JSON string
    """
    return json.dumps(
        obj,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_canonical_default,
    )


def _canonical_default(obj: Any) -> Any:
    """
    Default handler for JSON serialization of non-standard types.
    """
    if hasattr(obj, "isoformat"):
        # datetime objects
        return obj.isoformat()

    if hasattr(obj, "as_str"):
        # RelativePath
        return obj.as_str()

    return str(obj)


def compute_content_digest(data: bytes) -> str:
    """
    Compute the hex SHA256 digest of raw file content.

    Args:
        data: File content

    Returns:
        Hex-encoded SHA256 hash string
    """
    return hashlib.sha256(data).hexdigest()


def compute_file_digest(path: Path, chunk_size: int = DIGEST_CHUNK_SIZE) -> str:
    """
    Stream a file from disk and compute its content digest.

    Raises:
        OSError: If the file cannot be read
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def compute_tree_digest(directory: "Directory") -> str:
    """
    Compute a SHA256 over the canonical encoding of a directory tree.

    Capture metadata is not part of the tree, so two captures of the same
    unmodified directory produce the same digest.
    """
    from .codec import entry_to_dict

    canonical_str = canonicalize(entry_to_dict(directory))
    return hashlib.sha256(canonical_str.encode("utf-8")).hexdigest()


def verify_content_digest(file: "File") -> bool:
    """
    Verify that a file's embedded content matches its size and digest.

    Files without embedded content are trivially consistent.
    """
    if file.content is None:
        return True
    return (
        len(file.content) == file.size
        and compute_content_digest(file.content) == file.content_digest
    )
