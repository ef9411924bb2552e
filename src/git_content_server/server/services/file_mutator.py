"""
File Mutator.

Writes or deletes a single file at an already resolved absolute path.
Mutations are not transactional with the commit that may follow: the
repository, not this component, is the durability boundary.
"""

import logging
import os
import tempfile
from pathlib import Path

from ..logging_utils import format_error_log, get_log_extra
from .exceptions import ContentNotFoundError, FileOperationError
from .models import MutationOperation, MutationRequest

logger = logging.getLogger(__name__)


class FileMutator:
    """Single-file filesystem mutations inside the working tree."""

    def apply(self, request: MutationRequest) -> None:
        """Dispatch a MutationRequest to write() or delete()."""
        if request.operation == MutationOperation.WRITE:
            assert request.content is not None  # Guaranteed by MutationRequest
            self.write(request.absolute_path, request.content)
        else:
            self.delete(request.absolute_path)

    def write(self, path: Path, content: bytes) -> None:
        """
        Create or overwrite the file at path with exactly content.

        Intermediate directories are created if absent. The write goes
        through a temp file in the target directory and an atomic rename,
        so readers never observe a partially written file.

        Raises:
            FileOperationError: On permission or disk errors
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            temp_fd, temp_path = tempfile.mkstemp(
                dir=str(path.parent), prefix=".tmp_", suffix=f"_{path.name}"
            )
            try:
                with os.fdopen(temp_fd, "wb") as temp_file:
                    temp_file.write(content)
                    temp_file.flush()
                    os.fsync(temp_file.fileno())

                os.replace(temp_path, str(path))
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

        except OSError as e:
            logger.error(
                format_error_log("CONTENT-FS-001", "Failed to write file", path=path, error=e),
                extra=get_log_extra("CONTENT-FS-001"),
            )
            raise FileOperationError(f"Failed to write file '{path}': {e}") from e

        logger.debug(f"Wrote {len(content)} bytes to {path}")

    def delete(self, path: Path) -> None:
        """
        Remove the file at path.

        Raises:
            ContentNotFoundError: If no file exists at path
            FileOperationError: On any other failure
        """
        path = Path(path)
        if not path.is_file():
            raise ContentNotFoundError(f"File not found: {path}")

        try:
            os.remove(str(path))
        except FileNotFoundError as e:
            raise ContentNotFoundError(f"File not found: {path}") from e
        except OSError as e:
            logger.error(
                format_error_log("CONTENT-FS-002", "Failed to delete file", path=path, error=e),
                extra=get_log_extra("CONTENT-FS-002"),
            )
            raise FileOperationError(f"Failed to delete file '{path}': {e}") from e

        logger.debug(f"Deleted {path}")
