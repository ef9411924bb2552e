"""
Commit Coordinator.

Turns a set of already mutated files into exactly one commit: stage then
commit, under the gateway lock so concurrent requests cannot interleave
their staging.

Partial-failure policy: filesystem mutations are never rolled back. If the
commit fails the working tree stays dirty and the caller must retry the
commit or reset the affected files. The index is restored for the
requested files, so a refused commit never leaks into a later one.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence

from ..logging_utils import format_error_log, get_log_extra
from .exceptions import RepositoryError
from .git_gateway import RepositoryGateway
from .models import CommitRecord

logger = logging.getLogger(__name__)


class CommitCoordinator:
    """Stages and commits files as one logical transaction."""

    def __init__(self, gateway: RepositoryGateway):
        self.gateway = gateway

    def commit_change(
        self,
        files: Sequence[Path],
        message: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ) -> str:
        """
        Stage files and commit them.

        Args:
            files: Absolute paths to include, in order; must be non-empty
            message: Commit message
            author_name: Optional author name
            author_email: Optional author email

        Returns:
            The new commit id

        Raises:
            RepositoryError: If the author is invalid, or staging or
                committing fails; no commit is created and the files are
                unstaged again
        """
        if not files:
            raise RepositoryError("Cannot commit: no files given")

        with self.gateway.lock:
            self.gateway.validate_author(author_name, author_email)
            try:
                self.gateway.stage(list(files))
                commit_id = self.gateway.commit(
                    message, author_name, author_email, paths=list(files)
                )
            except RepositoryError as e:
                logger.warning(
                    format_error_log(
                        "CONTENT-GIT-003",
                        "Commit failed, working tree left as-is",
                        files=len(files),
                        error=e,
                    ),
                    extra=get_log_extra("CONTENT-GIT-003"),
                )
                self._unstage_after_failure(files)
                raise

        logger.info(f"Committed {len(files)} file(s) as {commit_id[:8]}")
        return commit_id

    def _unstage_after_failure(self, files: Sequence[Path]) -> None:
        try:
            self.gateway.unstage(list(files))
        except RepositoryError as e:
            logger.error(
                format_error_log(
                    "CONTENT-GIT-005",
                    "Failed to unstage paths after a refused commit",
                    files=len(files),
                    error=e,
                ),
                extra=get_log_extra("CONTENT-GIT-005"),
            )

    def commit_record(self, record: CommitRecord) -> str:
        """commit_change() driven by a CommitRecord."""
        return self.commit_change(
            record.files, record.message, record.author_name, record.author_email
        )
