"""
Path Resolver.

Maps caller-supplied relative paths onto absolute paths that are guaranteed
to stay inside the configured content root. Every other component trusts
its output unconditionally.
"""

import logging
import ntpath
import os
from pathlib import Path
from urllib.parse import unquote

from .exceptions import PathEscapeError

logger = logging.getLogger(__name__)


class PathResolver:
    """
    Resolves untrusted relative paths against a content root.

    Resolution is lexical: the input is percent-decoded, joined to the
    content root and normalized (``.`` and ``..`` collapsed). The result
    must lie strictly below the content root.
    """

    def __init__(self, content_root: Path):
        self.content_root = Path(os.path.normpath(os.path.abspath(str(content_root))))

    def resolve(self, rel_path: str) -> Path:
        """
        Resolve a relative file path.

        Args:
            rel_path: Caller-supplied path, possibly percent-encoded

        Returns:
            Absolute path strictly inside the content root

        Raises:
            PathEscapeError: If the path is absolute, targets .git/, is empty
                after normalization, or escapes the content root
        """
        return self._resolve(rel_path, allow_root=False)

    def resolve_directory(self, rel_dir: str) -> Path:
        """
        Resolve a relative directory path.

        Unlike resolve(), an empty path is allowed and maps to the
        content root itself.
        """
        return self._resolve(rel_dir or "", allow_root=True)

    def relative_to_root(self, absolute_path: Path) -> str:
        """Return the POSIX-style path of absolute_path below the content root."""
        return Path(absolute_path).relative_to(self.content_root).as_posix()

    def _resolve(self, raw_path: str, allow_root: bool) -> Path:
        decoded = unquote(raw_path)

        if "\x00" in decoded:
            raise PathEscapeError(f"Path contains NUL byte: {raw_path!r}")

        if decoded.startswith(("/", "\\")) or ntpath.splitdrive(decoded)[0]:
            raise PathEscapeError(
                f"Absolute paths are not allowed, use paths relative to the content root: {raw_path}"
            )

        candidate = os.path.normpath(os.path.join(str(self.content_root), decoded))
        root = str(self.content_root)

        if candidate == root:
            if allow_root:
                return self.content_root
            raise PathEscapeError(f"Path is empty after normalization: {raw_path!r}")

        if os.path.commonpath([root, candidate]) != root:
            raise PathEscapeError(f"Path escapes content root: {raw_path}")

        # Exact component match: .gitignore and .github/ stay reachable
        if ".git" in Path(candidate).relative_to(root).parts:
            raise PathEscapeError(f"Access to .git/ directory is forbidden: {raw_path}")

        logger.debug(f"Resolved {raw_path!r} to {candidate}")
        return Path(candidate)
