"""
Structural validation of snapshot trees.

Snapshots are built top-down by the capture tool, but the serialized form
may have been edited by hand, so the mock engine re-checks the tree
invariants before serving it.
"""

import logging
from typing import List, Set

from ..common.relative_path import RelativePath
from ..core.exceptions import InvalidSnapshotError
from ..v1.model import Directory, Entry, File, Snapshot
from .canonical import verify_content_digest

logger = logging.getLogger(__name__)


def validate_snapshot(snapshot: Snapshot) -> None:
    """
    Check every tree invariant of a snapshot.

    Checks:
    - The root is a loaded directory at the empty path
    - Each child path is its parent path extended by exactly its name
    - Names are unique within a directory and children are in name order
    - No node appears twice in the tree (no shared subtrees or cycles)
    - File sizes are non-negative and embedded content matches size and digest
    - No directory is unloaded

    Raises:
        InvalidSnapshotError: On the first violation found
    """
    root = snapshot.root
    if not isinstance(root, Directory):
        raise InvalidSnapshotError("Snapshot root must be a directory")
    if not root.path.is_empty():
        raise InvalidSnapshotError(
            f"Snapshot root must have an empty path, got '{root.path}'",
            path=root.path.as_str(),
        )

    seen_nodes: Set[int] = set()
    seen_paths: Set[RelativePath] = set()
    _validate_directory(root, seen_nodes, seen_paths)

    logger.debug(f"Validated snapshot with {len(seen_paths)} entries")


def _validate_directory(directory: Directory, seen_nodes: Set[int], seen_paths: Set[RelativePath]) -> None:
    # Iterative walk so deep trees do not hit the recursion limit
    stack: List[Directory] = [directory]
    seen_nodes.add(id(directory))
    seen_paths.add(directory.path)

    while stack:
        current = stack.pop()
        if current.children is None:
            raise InvalidSnapshotError(
                f"Directory '{current.path}' is not loaded",
                path=current.path.as_str(),
            )

        previous_name = None
        for child in current.children:
            _validate_child(current, child, previous_name, seen_nodes, seen_paths)
            previous_name = child.name
            if isinstance(child, Directory):
                stack.append(child)


def _validate_child(
    parent: Directory,
    child: Entry,
    previous_name,
    seen_nodes: Set[int],
    seen_paths: Set[RelativePath],
) -> None:
    if not isinstance(child, (File, Directory)):
        raise InvalidSnapshotError(
            f"Directory '{parent.path}' contains a non-entry child: {child!r}",
            path=parent.path.as_str(),
        )

    path_str = child.path.as_str()
    if id(child) in seen_nodes:
        raise InvalidSnapshotError(f"Entry '{path_str}' appears more than once in the tree", path=path_str)
    seen_nodes.add(id(child))

    if child.path.parent != parent.path or child.path.is_empty():
        raise InvalidSnapshotError(
            f"Entry '{path_str}' is not a direct child of '{parent.path}'",
            path=path_str,
        )

    if previous_name is not None:
        if child.name == previous_name:
            raise InvalidSnapshotError(f"Duplicate entry name at '{path_str}'", path=path_str)
        if child.name < previous_name:
            raise InvalidSnapshotError(
                f"Entries of '{parent.path}' are not sorted by name ('{previous_name}' before '{child.name}')",
                path=path_str,
            )

    if child.path in seen_paths:
        raise InvalidSnapshotError(f"Duplicate entry path '{path_str}'", path=path_str)
    seen_paths.add(child.path)

    if isinstance(child, File):
        if child.size < 0:
            raise InvalidSnapshotError(f"File '{path_str}' has a negative size", path=path_str)
        if not verify_content_digest(child):
            raise InvalidSnapshotError(
                f"Embedded content of '{path_str}' does not match its size or digest",
                path=path_str,
            )
