"""
Configuration management for the workspace API.
"""

from .config_loader import WorkspaceConfig

__all__ = ["WorkspaceConfig"]
