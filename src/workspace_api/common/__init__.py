"""
Types shared by every version of the workspace API.
"""

from .relative_path import RelativePath, PathLike

__all__ = [
    "RelativePath",
    "PathLike",
]
