"""
Workspace-relative path value type.

A RelativePath is a path relative to some arbitrary workspace root. It holds
a subset of pathlib's behaviour without the platform-specific parts:
- always uses ``/`` as the separator (backslashes are normalized on input)
- never absolute, never ends with a separator
- never contains empty, ``.`` or ``..`` segments
- the empty string is the root
"""

import os
from pathlib import PurePath
from typing import Iterable, Optional, Sequence, Tuple, Union

from ..core.exceptions import InvalidPathError


SEPARATOR = "/"


class RelativePath:
    """
    Normalized path within a workspace.

    Ordering is component-wise, so ``a/b/c`` sorts before ``a/b!/c`` even
    though ``!`` is less than ``/`` in a plain string comparison.
    """

    __slots__ = ("_path", "_components")

    def __init__(self, path: str = ""):
        if not isinstance(path, str):
            raise InvalidPathError(f"Path must be a string, got {type(path).__name__}")

        normalized = path.replace("\\", SEPARATOR)
        if normalized.startswith(SEPARATOR) or normalized.endswith(SEPARATOR):
            raise InvalidPathError(
                f"The provided path '{normalized}' is invalid as a relative path",
                path=normalized,
            )

        components = tuple(normalized.split(SEPARATOR)) if normalized else ()
        for component in components:
            if component in ("", ".", ".."):
                raise InvalidPathError(
                    f"The provided path '{normalized}' is invalid as a relative path",
                    path=normalized,
                )

        self._path = normalized
        self._components = components

    @classmethod
    def root(cls) -> "RelativePath":
        """Return the empty root path."""
        return cls("")

    @classmethod
    def from_segments(cls, segments: Iterable[str]) -> "RelativePath":
        """Build a path from individual segments."""
        segments = list(segments)
        for segment in segments:
            if not isinstance(segment, str) or not segment or SEPARATOR in segment or "\\" in segment:
                raise InvalidPathError(f"Invalid path segment: {segment!r}")
        return cls(SEPARATOR.join(segments))

    @classmethod
    def from_os_path(cls, path: Union[str, "os.PathLike[str]"]) -> "RelativePath":
        """Convert a relative OS path (e.g. one returned by ``Path.relative_to``)."""
        parts = [part for part in PurePath(path).parts if part != "."]
        if PurePath(path).is_absolute():
            raise InvalidPathError(f"Expected a relative path, got '{path}'", path=str(path))
        return cls.from_segments(parts)

    @classmethod
    def coerce(cls, value: Union["RelativePath", str, Sequence[str]]) -> "RelativePath":
        """
        Accept a RelativePath, a string or a sequence of segments.

        Args:
            value: The path in any supported form

        Returns:
            A RelativePath
        """
        if isinstance(value, RelativePath):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, (list, tuple)):
            return cls.from_segments(value)
        raise InvalidPathError(f"Cannot interpret {value!r} as a workspace path")

    def as_str(self) -> str:
        """Return the string representation of the path."""
        return self._path

    @property
    def components(self) -> Tuple[str, ...]:
        """Path segments from the root."""
        return self._components

    @property
    def file_name(self) -> Optional[str]:
        """Last segment, or None for the root."""
        if not self._components:
            return None
        return self._components[-1]

    @property
    def parent(self) -> Optional["RelativePath"]:
        """Parent path, or None for the root."""
        if not self._components:
            return None
        return RelativePath(SEPARATOR.join(self._components[:-1]))

    @property
    def depth(self) -> int:
        return len(self._components)

    def is_empty(self) -> bool:
        return not self._path

    def join(self, name: str) -> "RelativePath":
        """
        Extend this path by one or more segments.

        Raises:
            InvalidPathError: If the result would not be a valid path
        """
        if not name:
            raise InvalidPathError("Cannot join an empty name", path=self._path)
        if not self._path:
            return RelativePath(name)
        return RelativePath(f"{self._path}{SEPARATOR}{name}")

    def common_ancestor(self, other: "RelativePath") -> "RelativePath":
        """
        Longest path that is an ancestor of (or equal to) both paths.

        The common ancestor of ``a/b/c/d`` and ``a/b/e/f`` is ``a/b``; of
        ``a/b/c`` and ``d/e/f`` it is the root.
        """
        shared = []
        for mine, theirs in zip(self._components, other._components):
            if mine != theirs:
                break
            shared.append(mine)
        return RelativePath(SEPARATOR.join(shared))

    def is_ancestor_of(self, other: "RelativePath") -> bool:
        """True when ``other`` lies strictly below this path."""
        return (
            len(other._components) > len(self._components)
            and other._components[:len(self._components)] == self._components
        )

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"RelativePath({self._path!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RelativePath):
            return self._path == other._path
        if isinstance(other, str):
            return self._path == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._path)

    def __lt__(self, other: "RelativePath") -> bool:
        if not isinstance(other, RelativePath):
            return NotImplemented
        return self._components < other._components

    def __le__(self, other: "RelativePath") -> bool:
        if not isinstance(other, RelativePath):
            return NotImplemented
        return self._components <= other._components

    def __gt__(self, other: "RelativePath") -> bool:
        if not isinstance(other, RelativePath):
            return NotImplemented
        return self._components > other._components

    def __ge__(self, other: "RelativePath") -> bool:
        if not isinstance(other, RelativePath):
            return NotImplemented
        return self._components >= other._components


PathLike = Union[RelativePath, str, Sequence[str]]
