"""
Operation contract for version 1 of the workspace API.

Every workspace backend (the mock engine, or a real networked backend)
implements WorkspaceApi. All operations are coroutines; independent calls
may be awaited concurrently.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..common.relative_path import PathLike
from .model import Directory, EntrySummary, WorkspaceStatus


@dataclass
class DirectoryFetchOptions:
    """
    Options for fetch_directory.

    Attributes:
        depth_limit: Depth to load below the fetched directory; None means
            unlimited. A depth limit of 0 loads only the directory itself,
            with every sub-directory unloaded.
        filter_string: Case-insensitive substring filter applied to the
            names of the directory's direct children
    """
    depth_limit: Optional[int] = None
    filter_string: Optional[str] = None


class WorkspaceApi(ABC):
    """
    Abstract base class for workspace backends.

    Paths may be given as a RelativePath, a "/"-separated string or a
    sequence of segments. Per-call failures are raised as subclasses of
    WorkspaceCallError and do not affect other calls.
    """

    @abstractmethod
    async def list_entries(self, path: PathLike) -> List[EntrySummary]:
        """
        List the children of a directory in canonical name order.

        Raises:
            EntryNotFoundError: If the path does not exist
            EntryNotADirectoryError: If the path names a file
        """
        pass

    @abstractmethod
    async def read_file(self, path: PathLike) -> bytes:
        """
        Read the content of a file.

        Raises:
            EntryNotFoundError: If the path does not exist
            EntryNotAFileError: If the path names a directory
        """
        pass

    @abstractmethod
    async def stat(self, path: PathLike) -> EntrySummary:
        """
        Return metadata for a single entry.

        Raises:
            EntryNotFoundError: If the path does not exist
        """
        pass

    @abstractmethod
    async def get_status(self) -> WorkspaceStatus:
        """Return a summary of the workspace."""
        pass

    @abstractmethod
    async def fetch_directory(
        self,
        path: PathLike,
        options: Optional[DirectoryFetchOptions] = None,
    ) -> Directory:
        """
        Fetch a directory subtree.

        Raises:
            EntryNotFoundError: If the path does not exist
            EntryNotADirectoryError: If the path names a file
        """
        pass

    @abstractmethod
    async def write_file(self, path: PathLike, data: bytes) -> EntrySummary:
        """
        Stage new content for a file.

        Raises:
            EntryNotFoundError: If the parent directory does not exist
            EntryNotADirectoryError: If the parent path names a file
            EntryNotAFileError: If the path names a directory
        """
        pass

    @abstractmethod
    async def create_directory(self, path: PathLike) -> EntrySummary:
        """
        Stage a new, empty directory.

        Raises:
            EntryNotFoundError: If the parent directory does not exist
            EntryNotADirectoryError: If the parent path names a file
            EntryExistsError: If an entry already exists at the path
        """
        pass

    @abstractmethod
    async def delete_entry(self, path: PathLike) -> None:
        """
        Stage the deletion of a file or directory (and its descendants).

        Raises:
            EntryNotFoundError: If the path does not exist
            InvalidPathError: If the path is the workspace root
        """
        pass

    def get_name(self) -> str:
        """Return the backend name/identifier."""
        return type(self).__name__
