"""Source file enumeration.

Recursively lists analyzable files under a root directory. Unreadable
subtrees are skipped so that one bad directory never fails the whole walk.
"""

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Source and config extensions worth sending to the model
DEFAULT_EXTENSIONS = frozenset(
    {
        ".ts",
        ".tsx",
        ".js",
        ".jsx",
        ".mjs",
        ".cjs",
        ".json",
        ".py",
        ".java",
        ".kt",
        ".go",
        ".rs",
        ".rb",
        ".php",
        ".cs",
        ".c",
        ".h",
        ".cpp",
        ".hpp",
        ".swift",
        ".vue",
        ".svelte",
    }
)

# Directory names never descended into (hidden directories are skipped too)
DEFAULT_EXCLUDE_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "out",
        "build",
        "__pycache__",
        "venv",
        ".venv",
        "coverage",
    }
)


class FileEnumerator:
    """Lists analyzable files depth-first.

    Entries of each directory are visited in name order, so a given tree
    always enumerates the same way.
    """

    def __init__(
        self,
        extensions: Iterable[str] | None = None,
        exclude_dirs: Iterable[str] | None = None,
        skip_hidden: bool = True,
    ) -> None:
        """Initialize the enumerator.

        Args:
            extensions: Allowed file extensions (with leading dot)
            exclude_dirs: Directory names to skip
            skip_hidden: Skip directories whose name starts with "."
        """
        self.extensions = frozenset(
            e.lower() if e.startswith(".") else f".{e.lower()}"
            for e in (extensions if extensions is not None else DEFAULT_EXTENSIONS)
        )
        self.exclude_dirs = frozenset(
            exclude_dirs if exclude_dirs is not None else DEFAULT_EXCLUDE_DIRS
        )
        self.skip_hidden = skip_hidden

    def is_excluded_dir(self, name: str) -> bool:
        """Check whether a directory name is on the deny-list."""
        return name in self.exclude_dirs or (self.skip_hidden and name.startswith("."))

    def is_allowed_file(self, name: str) -> bool:
        """Check whether a file name has an allowed extension."""
        return os.path.splitext(name)[1].lower() in self.extensions

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Yield absolute paths of analyzable files under root.

        Args:
            root: Directory to walk

        Yields:
            Absolute file paths, depth-first
        """
        root = Path(root).resolve()
        if not root.is_dir():
            logger.debug("Enumeration root is not a directory: %s", root)
            return
        yield from self._walk(root)

    def enumerate(self, root: Path) -> list[Path]:
        """Return all analyzable files under root (empty if unreadable)."""
        return list(self.iter_files(root))

    def _walk(self, directory: Path) -> Iterator[Path]:
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", directory, e)
            return

        for entry in entries:
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
                is_file = entry.is_file()
            except OSError as e:
                logger.debug("Skipping unreadable entry %s: %s", entry.path, e)
                continue

            if is_dir:
                if not self.is_excluded_dir(entry.name):
                    yield from self._walk(Path(entry.path))
            elif is_file and self.is_allowed_file(entry.name):
                yield Path(entry.path)

    def build_tree(self, root: Path) -> dict[str, Any]:
        """Build a nested folder/file tree for display.

        Excluded directories are omitted, as are hidden entries unless
        skip_hidden is off. Folders list their children folders-first,
        alphabetically.

        Args:
            root: Directory (or file) to describe

        Returns:
            ``{"id", "name", "type", "children"}`` node (files have no children)
        """
        root = Path(root).resolve()
        if not root.is_dir():
            return {"id": str(root), "name": root.name, "type": "file"}

        children: list[dict[str, Any]] = []
        try:
            with os.scandir(root) as it:
                entries = sorted(it, key=lambda e: (not e.is_dir(follow_symlinks=False), e.name))
        except OSError as e:
            logger.debug("Skipping unreadable directory %s: %s", root, e)
            entries = []

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                if self.is_excluded_dir(entry.name):
                    continue
            elif self.skip_hidden and entry.name.startswith("."):
                continue
            children.append(self.build_tree(Path(entry.path)))

        return {"id": str(root), "name": root.name, "type": "folder", "children": children}
