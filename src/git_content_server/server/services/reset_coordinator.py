"""
Reset Coordinator.

Discards uncommitted changes through RepositoryGateway.checkout.

discard() keeps the long-standing behaviour of restoring only the FIRST
file of the list; discard_all() is the explicitly named variant that
restores every listed file.
"""

import logging
from pathlib import Path
from typing import Sequence

from ..logging_utils import format_error_log, get_log_extra
from .exceptions import RepositoryError
from .git_gateway import RepositoryGateway
from .models import ResetResult

logger = logging.getLogger(__name__)


class ResetCoordinator:
    def __init__(self, gateway: RepositoryGateway):
        self.gateway = gateway

    def discard(self, files: Sequence[Path]) -> ResetResult:
        """
        Restore the first of files to its HEAD content.

        Remaining files are ignored and reported in the result.

        Raises:
            RepositoryError: If files is empty or checkout fails
        """
        if not files:
            raise RepositoryError("Cannot reset: no files given")

        first, rest = Path(files[0]), [Path(f) for f in files[1:]]
        if rest:
            logger.warning(
                format_error_log(
                    "CONTENT-GIT-004",
                    "Reset only discards the first file",
                    discarded=first,
                    ignored=len(rest),
                ),
                extra=get_log_extra("CONTENT-GIT-004"),
            )

        with self.gateway.lock:
            self.gateway.checkout([first])

        return ResetResult(discarded=[first], ignored=rest)

    def discard_all(self, files: Sequence[Path]) -> ResetResult:
        """
        Restore every file in files to its HEAD content.

        The checkout is a single git invocation: if any path has no tracked
        history nothing is restored.
        """
        if not files:
            raise RepositoryError("Cannot reset: no files given")

        paths = [Path(f) for f in files]
        with self.gateway.lock:
            self.gateway.checkout(paths)

        return ResetResult(discarded=paths)
