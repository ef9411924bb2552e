"""
Exception taxonomy for the content mutation pipeline.

Every component raises one of these; the REST boundary translates them
into structured failure responses.
"""

from typing import List, Optional


class ContentOperationError(Exception):
    """
    Base exception for content operation failures.

    All pipeline components raise this exception or its subclasses.
    """

    pass


class PathEscapeError(ContentOperationError):
    """
    Raised when a caller-supplied path would resolve outside the content root.

    This is a security violation and is never recovered from.
    """

    pass


class ContentNotFoundError(ContentOperationError):
    """
    Raised when a file or committed blob does not exist.
    """

    pass


class FileOperationError(ContentOperationError):
    """
    Raised when a filesystem mutation fails (permissions, disk errors).
    """

    pass


class UploadTooLargeError(FileOperationError):
    """Raised when an upload exceeds the configured size limit."""

    pass


class RepositoryError(ContentOperationError):
    """
    Raised when a git staging, commit, checkout or read operation fails.

    Carries the failed command and git's stderr so callers can report
    what went wrong (dirty tree, locked index, nothing staged, ...).
    """

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.returncode = returncode
        self.stderr = stderr
