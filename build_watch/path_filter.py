"""
Path filtering for the project watcher.

Decides whether a path is excluded from observation and classification.
"""

import os
import posixpath
from typing import Iterable, List, Optional


def clean_path(path: str) -> str:
    """
    Lexically clean a path without touching the filesystem.

    Separators are normalized to '/', and '.' and '..' segments resolved.
    """
    path = path.replace(os.sep, "/").replace("\\", "/")
    return posixpath.normpath(path)


class PathFilter:
    """
    Matches paths against ignore prefixes.

    Matching is case-insensitive and done on cleaned paths relative to the
    project root, so "NODE_MODULES/x.js" is ignored by a "node_modules"
    prefix.
    """

    def __init__(self, ignore_dirs: Iterable[str], root: Optional[str] = None):
        """
        Initialize path filter.

        Args:
            ignore_dirs: Ignore prefixes, relative to the project root
            root: Project root. Absolute paths under it are made relative
                before matching.
        """
        self.root = os.path.abspath(root) if root else None
        self.prefixes: List[str] = []
        for ignore in ignore_dirs:
            prefix = clean_path(ignore).lower()
            if prefix not in self.prefixes:
                self.prefixes.append(prefix)

    def relative(self, path: str) -> str:
        """Express path relative to the project root, cleaned."""
        if self.root and os.path.isabs(path):
            path = os.path.relpath(path, self.root)
        return clean_path(path)

    def is_ignored(self, path: str) -> bool:
        """
        Check if a path is excluded from observation.

        Args:
            path: Path to check (absolute under the root, or relative to it)

        Returns:
            True if the cleaned path starts with any ignore prefix
        """
        cleaned = self.relative(path).lower()
        return any(cleaned.startswith(prefix) for prefix in self.prefixes)
