"""
Repository Gateway.

Thin capability surface over the version-control tool: stage, commit,
checkout and read-blob. RepositoryGateway is the abstract surface; the
GitRepositoryGateway implementation drives the git CLI via subprocess
with argument lists (never a shell).

One gateway instance exists per running service and is injected into the
coordinators. Its lock serializes multi-step sequences (stage+commit,
checkout) against the single working tree.
"""

import logging
import os
import subprocess
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..logging_utils import format_error_log, get_log_extra
from .exceptions import ContentNotFoundError, RepositoryError

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 60


def format_author(author_name: Optional[str], author_email: Optional[str]) -> Optional[str]:
    """
    Build a ``Name <email>`` author string.

    Without an email there is no explicit author and the repository's
    configured identity applies. Without a name the email doubles as the
    name.

    Raises:
        RepositoryError: If a field contains characters git cannot store
            in an author line
    """
    if not author_email:
        return None
    name = author_name or author_email
    for value in (name, author_email):
        if any(ch in value for ch in "<>\n\r"):
            raise RepositoryError(f"Invalid author field: {value!r}")
    return f"{name} <{author_email}>"


class RepositoryGateway(ABC):
    """Capability surface over a version-controlled working tree."""

    def __init__(self):
        self.lock = threading.RLock()

    def validate_author(self, author_name: Optional[str], author_email: Optional[str]) -> None:
        """Raise RepositoryError if commit() would refuse this author."""
        format_author(author_name, author_email)

    @abstractmethod
    def stage(self, paths: Sequence[Path]) -> None:
        """Mark paths (including deletions) for inclusion in the next commit."""

    @abstractmethod
    def unstage(self, paths: Sequence[Path]) -> None:
        """Reset the index entries of paths to HEAD, keeping working-tree content."""

    @abstractmethod
    def commit(
        self,
        message: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
        paths: Optional[Sequence[Path]] = None,
    ) -> str:
        """
        Commit and return the new commit id.

        With paths, exactly those paths are committed; other staged
        changes stay in the index untouched.
        """

    @abstractmethod
    def checkout(self, paths: Sequence[Path]) -> None:
        """Discard uncommitted changes to paths, restoring HEAD content."""

    @abstractmethod
    def read_blob(self, path: Path) -> bytes:
        """Return the content of path as committed at HEAD."""

    @abstractmethod
    def head_commit(self) -> Optional[str]:
        """Return the current HEAD commit id, or None if there is none."""


class GitRepositoryGateway(RepositoryGateway):
    """
    RepositoryGateway backed by the git command line.

    Uses REAL git operations; the repository's own locking (index.lock)
    is the last line of defense, self.lock the first.
    """

    def __init__(self, repo_root: Path, timeout: int = DEFAULT_GIT_TIMEOUT):
        """
        Initialize the gateway.

        Args:
            repo_root: Root of the git working tree
            timeout: Timeout in seconds for each git invocation
        """
        super().__init__()
        self.repo_root = Path(os.path.normpath(os.path.abspath(str(repo_root))))
        self.timeout = timeout

    def stage(self, paths: Sequence[Path]) -> None:
        """
        Stage paths for the next commit.

        Uses ``git add -A`` so deleted files are staged as removals.

        Raises:
            RepositoryError: If a path is outside the repository, matches
                nothing git knows about, or the index is locked
        """
        if not paths:
            raise RepositoryError("Nothing to stage: no paths given")

        rel_paths = [self._repo_relative(p) for p in paths]
        self._run_git(["add", "-A", "--", *rel_paths])
        logger.debug(f"Staged {rel_paths}")

    def unstage(self, paths: Sequence[Path]) -> None:
        """
        Drop staged changes to paths from the index.

        Working-tree content is left as it is.
        """
        if not paths:
            return

        rel_paths = [self._repo_relative(p) for p in paths]
        if self.head_commit() is None:
            self._run_git(["rm", "--cached", "-r", "-q", "--ignore-unmatch", "--", *rel_paths])
        else:
            self._run_git(["reset", "-q", "HEAD", "--", *rel_paths])
        logger.debug(f"Unstaged {rel_paths}")

    def commit(
        self,
        message: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
        paths: Optional[Sequence[Path]] = None,
    ) -> str:
        """
        Commit staged changes.

        Never creates an empty commit: if nothing is staged the commit is
        refused.

        Args:
            message: Commit message
            author_name: Author name; the email is used when absent
            author_email: Author email; without it git's configured identity
                is the author
            paths: Commit only these paths (``git commit --only``); other
                staged changes are neither committed nor discarded

        Returns:
            Full SHA of the new commit

        Raises:
            RepositoryError: Nothing staged, invalid author, or git failure
        """
        if not message or not message.strip():
            raise RepositoryError("Commit message must not be empty")

        author = format_author(author_name, author_email)
        rel_paths = [self._repo_relative(p) for p in paths] if paths else []

        if not self.has_staged_changes(rel_paths):
            raise RepositoryError("Nothing staged to commit")

        command = ["commit", "-q", "-m", message]
        if author:
            command.append(f"--author={author}")
        if rel_paths:
            command.extend(["--only", "--", *rel_paths])

        self._run_git(command)
        commit_id = self.head_commit()
        if commit_id is None:
            raise RepositoryError("Commit succeeded but HEAD could not be resolved")

        logger.info(f"Created commit {commit_id[:8]}: {message.splitlines()[0]}")
        return commit_id

    def checkout(self, paths: Sequence[Path]) -> None:
        """
        Restore paths (index and working tree) to their HEAD content.

        Raises:
            RepositoryError: If a path has no tracked history at HEAD
        """
        if not paths:
            raise RepositoryError("Nothing to checkout: no paths given")

        rel_paths = [self._repo_relative(p) for p in paths]
        self._run_git(["checkout", "HEAD", "--", *rel_paths])
        logger.debug(f"Restored {rel_paths} to HEAD")

    def read_blob(self, path: Path) -> bytes:
        """
        Read a file's content as committed at HEAD.

        Uncommitted working-tree content is ignored.

        Raises:
            ContentNotFoundError: If the path is not a file at HEAD
            RepositoryError: If git fails for another reason
        """
        rel_path = self._repo_relative(path)
        return self.read_blob_relative(rel_path)

    def read_blob_relative(self, rel_path: str) -> bytes:
        """read_blob() for a path already expressed relative to the repository root."""
        spec = f"HEAD:{rel_path}"

        object_type = self._run_git(["cat-file", "-t", spec], check=False)
        if object_type.returncode != 0 or object_type.stdout.strip() != b"blob":
            raise ContentNotFoundError(f"File not found at HEAD: {rel_path}")

        return self._run_git(["cat-file", "blob", spec]).stdout

    def has_staged_changes(self, rel_paths: Optional[List[str]] = None) -> bool:
        """
        Return True if the index differs from HEAD (or holds anything, before
        the first commit), optionally limited to rel_paths.
        """
        pathspec = ["--", *rel_paths] if rel_paths else []
        if self.head_commit() is None:
            result = self._run_git(["ls-files", "--cached", *pathspec], check=False)
            return bool(result.stdout.strip())

        args = ["diff", "--cached", "--quiet", *pathspec]
        result = self._run_git(args, check=False)
        if result.returncode not in (0, 1):
            raise self._command_error(args, result)
        return result.returncode == 1

    def head_commit(self) -> Optional[str]:
        """Return the SHA of HEAD, or None for a repository without commits."""
        result = self._run_git(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.decode("utf-8").strip()

    def is_repository(self) -> bool:
        """Return True if repo_root is inside a git working tree."""
        try:
            result = self._run_git(["rev-parse", "--is-inside-work-tree"], check=False)
        except RepositoryError:
            return False
        return result.returncode == 0 and result.stdout.strip() == b"true"

    def _repo_relative(self, path: Path) -> str:
        absolute = os.path.normpath(os.path.abspath(str(path)))
        root = str(self.repo_root)
        if absolute == root or os.path.commonpath([root, absolute]) != root:
            raise RepositoryError(f"Path is outside repository: {path}")
        return Path(absolute).relative_to(self.repo_root).as_posix()

    def _git_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        env["GIT_TERMINAL_PROMPT"] = "0"  # Disable interactive prompts
        return env

    def _run_git(
        self, args: List[str], check: bool = True
    ) -> "subprocess.CompletedProcess[bytes]":
        command = ["git", *args]
        try:
            result = subprocess.run(
                command,
                cwd=str(self.repo_root),
                capture_output=True,
                timeout=self.timeout,
                env=self._git_env(),
            )
        except subprocess.TimeoutExpired as e:
            logger.error(
                format_error_log(
                    "CONTENT-GIT-002",
                    "Git command timed out",
                    command=" ".join(command),
                    timeout=self.timeout,
                ),
                extra=get_log_extra("CONTENT-GIT-002"),
            )
            raise RepositoryError(
                f"git {args[0]} timed out after {self.timeout}s", command=command
            ) from e
        except OSError as e:
            raise RepositoryError(
                f"Failed to run git {args[0]}: {e}", command=command
            ) from e

        if check and result.returncode != 0:
            raise self._command_error(args, result)
        return result

    def _command_error(
        self, args: List[str], result: "subprocess.CompletedProcess[bytes]"
    ) -> RepositoryError:
        stderr = (result.stderr or b"").decode("utf-8", errors="replace").strip()
        stdout = (result.stdout or b"").decode("utf-8", errors="replace").strip()
        detail = stderr or stdout or "Unknown error"
        logger.error(
            format_error_log(
                "CONTENT-GIT-001",
                "Git command failed",
                command=f"git {args[0]}",
                returncode=result.returncode,
                stderr=detail,
            ),
            extra=get_log_extra("CONTENT-GIT-001"),
        )
        return RepositoryError(
            f"git {args[0]} failed: {detail}",
            command=["git", *args],
            returncode=result.returncode,
            stderr=stderr,
        )
