#!/usr/bin/env python3
"""
Snapshot capture tool.

Walks a real directory tree and writes the resulting snapshot as JSON, for
use as mock data by the mock workspace engine.

Usage:
    mock_data_generator <path> [--compact | -c] [--embed-content] [--output FILE]
    python -m workspace_api.tools.mock_data_generator <path> [-c]

The capture is all-or-nothing: any unreadable file or directory aborts the
run with a non-zero exit code and a diagnostic naming the failing path. So
does any name that cannot be stored as a workspace path: names that are not
valid UTF-8, and names containing a backslash (the path separator on
Windows, which RelativePath normalizes to "/").
"""

import argparse
import logging
import os
import stat
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Iterator, List, Optional, Union

from .. import __version__
from ..common.relative_path import RelativePath
from ..core.exceptions import InvalidPathError, SerializationError, SnapshotIoError
from ..core.logging import configure_logging
from ..snapshot.canonical import compute_content_digest, compute_file_digest
from ..snapshot.codec import encode_snapshot, save_snapshot
from ..v1.model import CaptureMetadata, Directory, Entry, File, Snapshot

logger = logging.getLogger(__name__)


class SymlinkPolicy(str, Enum):
    """How the capture treats symbolic links."""
    SKIP = "skip"
    FOLLOW = "follow"
    FAIL = "fail"


@dataclass
class CaptureOptions:
    """
    Options for capture_snapshot.

    Attributes:
        embed_content: Embed raw file bytes in the snapshot
        max_embed_bytes: Files larger than this are captured without content
        symlink_policy: Skip links (default), follow them, or abort on them
        root_label: Label recorded in the snapshot (default: the root directory name)
    """
    embed_content: bool = False
    max_embed_bytes: Optional[int] = None
    symlink_policy: SymlinkPolicy = SymlinkPolicy.SKIP
    root_label: Optional[str] = None


@dataclass
class _OpenDirectory:
    """A directory whose children are still being captured."""
    fs_path: Path
    relative_path: RelativePath
    ancestors: FrozenSet[str]
    pending: Iterator[str]
    entries: List[Entry] = field(default_factory=list)


class TreeCapture:
    """
    Builds a Directory tree from a real directory.

    Children are visited in codepoint order of their names, which is the
    order list_entries reproduces later. The walk keeps its own stack of
    open directories, so tree depth is bounded by the filesystem rather
    than by the interpreter's recursion limit.
    """

    def __init__(self, root: Path, options: CaptureOptions):
        self.root = Path(root)
        self.options = options
        self.files_captured = 0
        self.directories_captured = 0
        self.entries_skipped = 0

    def capture(self) -> Directory:
        """
        Capture the whole tree under the root.

        Raises:
            SnapshotIoError: If the root is not a readable directory or any
                entry below it cannot be read
        """
        if not self.root.is_dir():
            raise SnapshotIoError(
                f"Target path '{self.root}' is not a directory",
                path=str(self.root),
            )

        ancestors = frozenset()
        if self.options.symlink_policy == SymlinkPolicy.FOLLOW:
            ancestors = frozenset([os.path.realpath(self.root)])

        stack = [self._open_directory(self.root, RelativePath.root(), ancestors)]
        while True:
            current = stack[-1]
            name = next(current.pending, None)

            if name is None:
                stack.pop()
                self.directories_captured += 1
                directory = Directory(path=current.relative_path, children=tuple(current.entries))
                if not stack:
                    return directory
                stack[-1].entries.append(directory)
                continue

            child = self._capture_child(current.fs_path / name, current.relative_path, name, current.ancestors)
            if isinstance(child, _OpenDirectory):
                stack.append(child)
            elif child is not None:
                current.entries.append(child)

    def _open_directory(self, fs_path: Path, relative_path: RelativePath, ancestors: FrozenSet[str]) -> _OpenDirectory:
        try:
            names = sorted(child.name for child in fs_path.iterdir())
        except OSError as e:
            raise SnapshotIoError(f"Failed to read directory '{fs_path}': {e}", path=str(fs_path)) from e

        return _OpenDirectory(
            fs_path=fs_path,
            relative_path=relative_path,
            ancestors=ancestors,
            pending=iter(names),
        )

    def _capture_child(
        self,
        fs_path: Path,
        parent_path: RelativePath,
        name: str,
        ancestors: FrozenSet[str],
    ) -> Union[Entry, _OpenDirectory, None]:
        relative_path = self._child_path(fs_path, parent_path, name)

        try:
            st = fs_path.lstat()
        except OSError as e:
            raise SnapshotIoError(f"Failed to stat '{fs_path}': {e}", path=str(fs_path)) from e

        if stat.S_ISLNK(st.st_mode):
            if self.options.symlink_policy == SymlinkPolicy.SKIP:
                logger.info(f"Skipping symlink: {fs_path}")
                self.entries_skipped += 1
                return None
            if self.options.symlink_policy == SymlinkPolicy.FAIL:
                raise SnapshotIoError(f"Symlinks are not allowed: '{fs_path}'", path=str(fs_path))
            try:
                st = fs_path.stat()
            except OSError as e:
                raise SnapshotIoError(f"Failed to follow symlink '{fs_path}': {e}", path=str(fs_path)) from e

        if stat.S_ISDIR(st.st_mode):
            # Loops are only possible through followed links
            if self.options.symlink_policy == SymlinkPolicy.FOLLOW:
                real_path = os.path.realpath(fs_path)
                if real_path in ancestors:
                    raise SnapshotIoError(f"Symlink loop detected at '{fs_path}'", path=str(fs_path))
                ancestors = ancestors | {real_path}
            return self._open_directory(fs_path, relative_path, ancestors)

        if stat.S_ISREG(st.st_mode):
            return self._capture_file(fs_path, relative_path, st)

        logger.warning(f"Skipping special file: {fs_path}")
        self.entries_skipped += 1
        return None

    def _child_path(self, fs_path: Path, parent_path: RelativePath, name: str) -> RelativePath:
        try:
            # Non-UTF-8 names survive os.listdir as lone surrogates
            name.encode("utf-8")
            return parent_path.join(RelativePath.from_segments([name]).as_str())
        except (UnicodeEncodeError, InvalidPathError) as e:
            raise SnapshotIoError(f"Unsupported file name at '{fs_path}': {e}", path=str(fs_path)) from e

    def _capture_file(self, fs_path: Path, relative_path: RelativePath, st: os.stat_result) -> File:
        max_embed = self.options.max_embed_bytes
        embed = self.options.embed_content and (max_embed is None or st.st_size <= max_embed)

        try:
            if embed:
                content = fs_path.read_bytes()
                size = len(content)
                digest = compute_content_digest(content)
            else:
                content = None
                size = st.st_size
                digest = compute_file_digest(fs_path)
        except OSError as e:
            raise SnapshotIoError(f"Failed to read file '{fs_path}': {e}", path=str(fs_path)) from e

        self.files_captured += 1
        return File(
            path=relative_path,
            size=size,
            content_digest=digest,
            modified_time_unix_ms_utc=st.st_mtime_ns // 1_000_000,
            content=content,
        )


def capture_snapshot(root: Path, options: Optional[CaptureOptions] = None) -> Snapshot:
    """
    Capture a directory tree as a Snapshot.

    Args:
        root: Directory to capture
        options: Capture options (defaults: no content, symlinks skipped)

    Returns:
        The captured Snapshot

    Raises:
        SnapshotIoError: On any filesystem failure; no partial snapshot is produced
    """
    options = options or CaptureOptions()
    root = Path(root)

    capture = TreeCapture(root, options)
    directory = capture.capture()

    label = options.root_label
    if label is None:
        label = Path(os.path.realpath(root)).name

    logger.info(
        f"Captured {capture.files_captured} files and "
        f"{capture.directories_captured - 1} directories from {root} "
        f"({capture.entries_skipped} skipped)"
    )

    return Snapshot(
        root=directory,
        metadata=CaptureMetadata(
            captured_at_utc=datetime.now(timezone.utc),
            tool_version=__version__,
            root_label=label,
        ),
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="mock_data_generator",
        description="Serialize a directory tree as mock workspace data",
        epilog=(
            "Any unreadable entry aborts the capture, as does a name that is not "
            "valid UTF-8 or contains a backslash."
        ),
    )

    parser.add_argument("target_dir", help="The target directory to serialize")
    parser.add_argument(
        "-c", "--compact",
        action="store_true",
        help="Output compact JSON instead of pretty-printed",
    )
    parser.add_argument(
        "--embed-content",
        action="store_true",
        help="Embed raw file content in the snapshot",
    )
    parser.add_argument(
        "--max-embed-bytes",
        type=int,
        help="Do not embed content of files larger than this",
    )
    parser.add_argument(
        "--symlinks",
        choices=[policy.value for policy in SymlinkPolicy],
        help="How to treat symbolic links (default: skip)",
    )
    parser.add_argument("--label", help="Root label recorded in the snapshot")
    parser.add_argument("-o", "--output", help="Write the snapshot to this file instead of stdout")
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    from ..config.config_loader import WorkspaceConfig

    args = parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = WorkspaceConfig(Path(args.config) if args.config else None)
        options = config.build_capture_options()
    except (OSError, ValueError) as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    if args.embed_content:
        options.embed_content = True
    if args.max_embed_bytes is not None:
        options.max_embed_bytes = args.max_embed_bytes
    if args.symlinks:
        options.symlink_policy = SymlinkPolicy(args.symlinks)
    if args.label is not None:
        options.root_label = args.label
    compact = args.compact or bool(config.get("capture.compact", False))

    try:
        snapshot = capture_snapshot(Path(args.target_dir), options)
        if args.output:
            save_snapshot(snapshot, Path(args.output), compact=compact)
        else:
            sys.stdout.write(encode_snapshot(snapshot, compact=compact))
            sys.stdout.write("\n")
    except (SnapshotIoError, SerializationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
