"""
Workspace boundaries for searchbench.

A workspace is an ordered set of root directories. Searches without an explicit
path cover every root; searches with a path must stay inside one of them.

Example:
    >>> from searchbench.core.workspace import WorkspaceContext
    >>> ws = WorkspaceContext(["/repo", "/docs"])
    >>> ws.is_path_within_workspace("/repo/src")
    True
    >>> ws.is_path_within_workspace("/etc")
    False
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from ..utils.logging_config import get_logger
from .config import SearchConfig


def _real(path: str | Path) -> str:
    return os.path.realpath(os.path.abspath(path))


class WorkspaceContext:
    """Ordered workspace roots with a containment check."""

    def __init__(self, directories: Iterable[str | Path]) -> None:
        self.logger = get_logger()
        self._directories: list[str] = []
        for directory in directories:
            self.add_directory(directory)

    @classmethod
    def from_config(cls, config: SearchConfig) -> WorkspaceContext:
        return cls(config.get_workspace_dirs())

    def add_directory(self, directory: str | Path) -> bool:
        """
        Add a root. Missing or non-directory paths are skipped with a warning.

        Returns:
            True when the directory was added, False when skipped or already present
        """
        resolved = _real(directory)
        if not os.path.isdir(resolved):
            self.logger.warning(f"Ignoring workspace directory that is not a directory: {directory}")
            return False
        if resolved in self._directories:
            return False
        self._directories.append(resolved)
        return True

    def get_directories(self) -> list[str]:
        return list(self._directories)

    def is_path_within_workspace(self, path: str | Path) -> bool:
        """True when ``path`` (after resolving symlinks) lies inside any root."""
        candidate = _real(path)
        for root in self._directories:
            try:
                if os.path.commonpath([root, candidate]) == root:
                    return True
            except ValueError:
                # different drives on Windows
                continue
        return False
